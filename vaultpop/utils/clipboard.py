"""System clipboard access via wl-copy (Wayland) or xclip (X11)."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)

CLIPBOARD_TIMEOUT = 5


@dataclass
class ClipboardResult:
    success: bool
    error: str | None = None


def detect_display_server() -> str:
    if os.environ.get("WAYLAND_DISPLAY"):
        return "wayland"
    if os.environ.get("DISPLAY"):
        return "x11"
    return "unknown"


def clipboard_command() -> list[str] | None:
    server = detect_display_server()
    if server == "wayland":
        return ["wl-copy"]
    if server == "x11":
        return ["xclip", "-selection", "clipboard"]
    return None


class Clipboard:
    """Pipes text into the platform clipboard utility."""

    def copy(self, text: str) -> ClipboardResult:
        cmd = clipboard_command()
        if cmd is None:
            return ClipboardResult(success=False, error="Unknown display server")

        try:
            proc = subprocess.run(
                cmd,
                input=text,
                text=True,
                # wl-copy forks a server that keeps inherited pipes open
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=CLIPBOARD_TIMEOUT,
            )
        except FileNotFoundError:
            return ClipboardResult(success=False, error=f"{cmd[0]} not found")
        except subprocess.TimeoutExpired:
            return ClipboardResult(success=False, error=f"{cmd[0]} timed out")
        except OSError as e:
            return ClipboardResult(success=False, error=str(e))

        if proc.returncode != 0:
            return ClipboardResult(success=False, error=f"{cmd[0]} exited with code {proc.returncode}")
        return ClipboardResult(success=True)

    def clear(self) -> ClipboardResult:
        result = self.copy("")
        if not result.success:
            logger.warning("Clipboard clear failed: %s", result.error)
        return result
