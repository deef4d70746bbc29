"""
vaultpop CLI: entry point for all operations.

Usage:
    vaultpop                # Open the vault popup (same as `vaultpop run`)
    vaultpop run            # Open the vault popup
    vaultpop status         # Show Bitwarden CLI presence and lock status
    vaultpop config         # Print the config file path (creates defaults)
    vaultpop version        # Show version
"""

from __future__ import annotations

import argparse
import logging
import sys

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="vaultpop",
        description="vaultpop: search, copy and edit Bitwarden vault entries from a terminal popup.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--bw", metavar="PATH", help="Bitwarden CLI binary (default: $VAULTPOP_BW_BIN or bw)")
    parser.add_argument("--log-file", metavar="PATH", help="Write logs to this file")
    parser.add_argument("--debug", action="store_true", help="Debug-level logging (needs --log-file)")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Open the vault popup")
    subparsers.add_parser("status", help="Show Bitwarden CLI status")
    subparsers.add_parser("config", help="Print the config file path")
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from vaultpop import __version__

        print(f"vaultpop {__version__}")
        return 0

    _setup_logging(args)

    if args.command == "status":
        return _cmd_status(args)
    elif args.command == "config":
        return _cmd_config(args)
    else:
        return _cmd_run(args)


def _setup_logging(args: argparse.Namespace) -> None:
    # stderr belongs to the full-screen UI, so logs only go to an explicit file
    if not args.log_file:
        return
    logging.basicConfig(
        filename=args.log_file,
        level=logging.DEBUG if args.debug else logging.INFO,
        format=LOG_FORMAT,
    )


def _cmd_status(args: argparse.Namespace) -> int:
    from vaultpop import __version__
    from vaultpop.agent.client import VaultAgent

    agent = VaultAgent(binary=args.bw)
    print(f"vaultpop v{__version__}")
    print()
    print(f"  Bitwarden CLI:  {agent.binary}")
    if not agent.check_installed():
        print("                  NOT FOUND")
        return 1

    status = agent.get_status()
    print(f"  Vault:          {status.status}")
    if status.user_email:
        print(f"  Account:        {status.user_email}")
    return 0 if status.status != "unauthenticated" else 1


def _cmd_config(args: argparse.Namespace) -> int:
    from vaultpop.config import get_config_path, load_config

    path = get_config_path()
    load_config(path)
    print(path)
    return 0


def _cmd_run(args: argparse.Namespace) -> int:
    from vaultpop.tui import check_textual

    if not check_textual():
        print("Textual is not installed. Install with: pip install vaultpop", file=sys.stderr)
        return 1

    from vaultpop.agent.client import VaultAgent
    from vaultpop.config import get_config
    from vaultpop.core.shutdown import ShutdownCoordinator
    from vaultpop.tui.app import VaultApp

    agent = VaultAgent(binary=args.bw)
    coordinator = ShutdownCoordinator(agent)
    app = VaultApp(agent=agent, config=get_config(), coordinator=coordinator)

    coordinator.install_signal_handlers(on_signal=app.exit)
    coordinator.register_atexit()
    try:
        app.run()
    finally:
        # Covers crashes inside the app; a no-op after a normal exit
        coordinator.lock()
        coordinator.restore_signal_handlers()

    if coordinator.error:
        print(f"vaultpop: failed to lock vault: {coordinator.error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
