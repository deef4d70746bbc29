"""Round-trip content through the user's external editor.

Content is written to an owner-only file inside a private, preferably
RAM-backed directory, the editor runs in the foreground, and the file is
removed before `open()` returns no matter how the edit ended.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shlex
import subprocess
import time
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

CANCEL_MARKER = "# CANCEL"
APP_DIR_NAME = "vaultpop"


@dataclass
class EditorResult:
    success: bool
    content: str | None = None
    cancelled: bool = False
    error: str | None = None


def get_secure_temp_dir() -> Path:
    """$XDG_RUNTIME_DIR/vaultpop (user-only tmpfs) or ~/.cache/vaultpop, mode 0700."""
    runtime = os.environ.get("XDG_RUNTIME_DIR")
    if runtime and Path(runtime).is_dir():
        base = Path(runtime) / APP_DIR_NAME
    else:
        base = Path.home() / ".cache" / APP_DIR_NAME
    base.mkdir(mode=0o700, parents=True, exist_ok=True)
    base.chmod(0o700)
    return base


def get_editor() -> str:
    return os.environ.get("EDITOR") or os.environ.get("VISUAL") or "nano"


def is_cancelled(content: str) -> bool:
    trimmed = content.strip()
    return trimmed == "" or trimmed.startswith(CANCEL_MARKER)


class ExternalEditor:
    """Blocking editor launcher.

    `suspend` is a context-manager factory that hands the terminal over to
    the editor while it runs (the TUI passes `App.suspend`).
    """

    def __init__(
        self,
        command: str | None = None,
        suspend: Callable[[], AbstractContextManager[object]] | None = None,
        temp_dir: Path | None = None,
    ) -> None:
        self.command = command
        self.suspend = suspend
        self.temp_dir = temp_dir

    def open(self, content: str, filename: str) -> EditorResult:
        """Edit `content`; `filename` is a hint such as "new-login.yaml"."""
        path: Path | None = None
        try:
            directory = self.temp_dir or get_secure_temp_dir()
            candidate = directory / f"{int(time.time() * 1000)}-{filename}"
            fd = os.open(candidate, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            path = candidate
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            path.chmod(0o600)

            cmd = [*shlex.split(self.command or get_editor()), str(path)]
            with self.suspend() if self.suspend else contextlib.nullcontext():
                proc = subprocess.run(cmd)
            if proc.returncode != 0:
                return EditorResult(success=False, error=f"Editor exited with code {proc.returncode}")

            edited = path.read_text(encoding="utf-8")
        except (OSError, ValueError) as e:
            logger.warning("Editor round trip failed: %s", e)
            return EditorResult(success=False, error=str(e) or type(e).__name__)
        finally:
            if path is not None:
                _remove(path)

        if is_cancelled(edited):
            return EditorResult(success=True, cancelled=True)
        return EditorResult(success=True, content=edited)


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove temp file %s: %s", path, e)
