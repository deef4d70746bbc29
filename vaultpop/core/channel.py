"""
Short-lived hand-off of secrets to the clipboard and the external editor.

The clipboard side owns the auto-clear timer: a successful copy arms it, a
new copy re-arms it, and `close()` cancels it. The editor side converts the
editor's result into either the edited text, None for a cancelled edit, or
an `EditorError`.
"""

from __future__ import annotations

import logging

from vaultpop.agent.errors import EditorError
from vaultpop.core.scheduler import Scheduler, Timer
from vaultpop.utils.clipboard import Clipboard, ClipboardResult
from vaultpop.utils.editor import ExternalEditor

logger = logging.getLogger(__name__)


class SecretChannel:
    def __init__(
        self,
        scheduler: Scheduler,
        clipboard: Clipboard | None = None,
        editor: ExternalEditor | None = None,
        clear_seconds: float = 30,
    ) -> None:
        self.clipboard = clipboard or Clipboard()
        self.editor = editor or ExternalEditor()
        self.clear_seconds = clear_seconds
        self._clear_timer = Timer(scheduler)

    @property
    def clear_pending(self) -> bool:
        return self._clear_timer.pending

    def copy(self, text: str) -> ClipboardResult:
        result = self.clipboard.copy(text)
        if result.success and self.clear_seconds > 0:
            self._clear_timer.arm(self.clear_seconds, self._clear)
        return result

    def _clear(self) -> None:
        logger.debug("Clearing clipboard after %ss", self.clear_seconds)
        self.clipboard.clear()

    def edit(self, content: str, filename: str) -> str | None:
        """Round-trip `content` through the editor. None means the user cancelled."""
        result = self.editor.open(content, filename)
        if not result.success:
            raise EditorError(result.error or "Editor failed")
        if result.cancelled:
            return None
        return result.content

    def close(self) -> None:
        self._clear_timer.cancel()
