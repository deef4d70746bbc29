"""
Lock-on-exit guarantee.

Every way out of the process (quit keys, idle timeout, SIGTERM/SIGHUP/SIGINT,
interpreter exit) funnels into `ShutdownCoordinator.lock()`, which sends the
agent a single lock command. The session token is read from a `TokenHolder`
that the session engine writes and the signal path reads directly, so a
signal arriving mid-operation still sees the current token.
"""

from __future__ import annotations

import atexit
import logging
import signal
import threading
from collections.abc import Callable
from typing import Any

from vaultpop.agent.client import AgentResult, VaultAgent

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGTERM, signal.SIGHUP, signal.SIGINT)


class TokenHolder:
    """The one piece of state shared between the UI and the shutdown path."""

    def __init__(self) -> None:
        # Reentrant: signal handlers run on the main thread, possibly mid-get/set
        self._lock = threading.RLock()
        self._token: str | None = None

    def get(self) -> str | None:
        with self._lock:
            return self._token

    def set(self, token: str | None) -> None:
        with self._lock:
            self._token = token

    def clear(self) -> None:
        self.set(None)


class ShutdownCoordinator:
    def __init__(self, agent: VaultAgent, tokens: TokenHolder | None = None) -> None:
        self.agent = agent
        self.tokens = tokens or TokenHolder()
        self.error: str | None = None
        # Reentrant: a signal can land while the main thread holds the guard
        self._guard = threading.RLock()
        self._locked = False
        self._previous_handlers: dict[int, Any] = {}
        self._atexit_registered = False

    @property
    def locked(self) -> bool:
        return self._locked

    def lock(self) -> AgentResult | None:
        """Lock the vault. Only the first call with a live token does anything.

        Never raises: a failed lock is logged and kept in `error` so the CLI
        can report it once the terminal is back.
        """
        with self._guard:
            if self._locked:
                return None
            token = self.tokens.get()
            if token is None:
                return None
            self._locked = True

        try:
            result = self.agent.lock(token)
        except Exception as e:
            logger.exception("Vault lock raised")
            result = AgentResult(success=False, error=str(e) or type(e).__name__)
        self.tokens.clear()
        if result.success:
            logger.info("Vault locked")
        else:
            self.error = result.error or "Failed to lock vault"
        return result

    def install_signal_handlers(self, on_signal: Callable[[], None] | None = None) -> None:
        """Lock on SIGTERM/SIGHUP/SIGINT, then hand over to `on_signal`.

        Without `on_signal` the handler exits with the conventional 128+N code.
        """

        def _cleanup(signum: int, frame: object) -> None:
            logger.info("Received %s, locking vault", signal.Signals(signum).name)
            self.lock()
            if on_signal is not None:
                on_signal()
            else:
                raise SystemExit(128 + signum)

        for sig in HANDLED_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, _cleanup)

    def restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def register_atexit(self) -> None:
        if not self._atexit_registered:
            atexit.register(self.lock)
            self._atexit_registered = True
