"""
VaultApp: main Textual application for vaultpop.

The app is a thin shell around `SessionEngine`: it turns key events into
`handle_key()` calls, hands the engine a scheduler backed by its own event
loop, and re-renders every widget whenever the engine reports a change.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from textual import events
from textual.actions import SkipAction
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.widgets import Header, Input

from vaultpop.agent.client import VaultAgent
from vaultpop.config import Config, get_config
from vaultpop.core.channel import SecretChannel
from vaultpop.core.keymap import BUSY_MODES, JUMP_KEYS, Mode, help_line
from vaultpop.core.scheduler import TextualScheduler
from vaultpop.core.session import SessionEngine
from vaultpop.core.shutdown import ShutdownCoordinator
from vaultpop.tui.widgets import (
    DetailPanel,
    GeneratorPanel,
    NoticePanel,
    ResultsList,
    ShortcutPanel,
    StatusBar,
)
from vaultpop.utils.editor import ExternalEditor

logger = logging.getLogger(__name__)

CSS_PATH = Path(__file__).parent / "theme.tcss"

# Keys the focused search box does not consume
NAVIGATION_KEYS = frozenset({"up", "down", "pageup", "pagedown"})

# Claimed before any widget sees them so inputs cannot swallow them
_PRIORITY_KEYS = (
    "ctrl+c",
    "ctrl+d",
    "ctrl+u",
    "ctrl+p",
    "ctrl+t",
    "ctrl+g",
    "ctrl+n",
    "ctrl+o",
    "ctrl+s",
    "ctrl+x",
    "ctrl+r",
    "ctrl+e",
    "escape",
    "tab",
    *(f"alt+{digit}" for digit in JUMP_KEYS),
)


class VaultApp(App):
    """Popup terminal client for a Bitwarden vault."""

    TITLE = "vaultpop"
    CSS_PATH = CSS_PATH
    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [Binding(key, f"dispatch('{key}')", show=False, priority=True) for key in _PRIORITY_KEYS]

    def __init__(
        self,
        agent: VaultAgent | None = None,
        config: Config | None = None,
        coordinator: ShutdownCoordinator | None = None,
        channel: SecretChannel | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.agent = agent or VaultAgent()
        self.config = config or get_config()
        self.coordinator = coordinator or ShutdownCoordinator(self.agent)
        self.scheduler = TextualScheduler(self)
        if channel is None:
            channel = SecretChannel(
                self.scheduler,
                editor=ExternalEditor(suspend=self.suspend),
                clear_seconds=self.config.clipboard_clear_seconds,
            )
        self.engine = SessionEngine(
            self.agent,
            self.scheduler,
            config=self.config,
            channel=channel,
            coordinator=self.coordinator,
            on_exit=self.exit,
        )

    def compose(self) -> ComposeResult:
        yield Header()
        yield Input(placeholder="Master password", password=True, id="password")
        yield Input(placeholder="Search...", id="search")
        with VerticalScroll(id="body"):
            yield ResultsList(id="results")
            yield DetailPanel(id="detail")
            yield GeneratorPanel(id="generator")
            yield ShortcutPanel(id="shortcuts")
            yield NoticePanel(id="notice")
        yield StatusBar(id="status-bar")

    @property
    def status_bar(self) -> StatusBar:
        return self.query_one("#status-bar", StatusBar)

    def on_mount(self) -> None:
        self.engine.subscribe(self.refresh_view)
        self.engine.start()

    # -- input --------------------------------------------------------------

    def action_dispatch(self, key: str) -> None:
        """Priority binding target: route `key` to the engine."""
        if not self.engine.handle_key(key) and self.engine.mode not in BUSY_MODES:
            raise SkipAction()

    async def action_quit(self) -> None:
        """Every quit path goes through the engine so the vault is locked."""
        self.engine.request_exit()

    def on_key(self, event: events.Key) -> None:
        mode = self.engine.mode
        if mode in (Mode.SEARCH, Mode.PASSWORD) and event.key not in NAVIGATION_KEYS:
            return
        if self.engine.handle_key(event.key, event.character):
            event.stop()
            event.prevent_default()

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search":
            self.engine.set_query(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "password":
            password = event.value
            event.input.value = ""
            self.engine.submit_password(password)
        elif event.input.id == "search":
            self.engine.handle_key("enter")

    # -- rendering ----------------------------------------------------------

    def refresh_view(self) -> None:
        """Project the engine state onto the widgets."""
        state = self.engine.state
        mode = state.mode

        password = self.query_one("#password", Input)
        search = self.query_one("#search", Input)
        results = self.query_one("#results", ResultsList)
        detail = self.query_one("#detail", DetailPanel)
        generator = self.query_one("#generator", GeneratorPanel)
        shortcuts = self.query_one("#shortcuts", ShortcutPanel)
        notice = self.query_one("#notice", NoticePanel)

        password.display = mode is Mode.PASSWORD
        search.display = mode is Mode.SEARCH
        results.display = mode is Mode.SEARCH
        detail.display = mode in (Mode.DETAIL, Mode.CONFIRM_DELETE)
        generator.display = mode is Mode.GENERATE
        shortcuts.display = mode is Mode.SHORTCUT
        notice.display = mode in BUSY_MODES or mode in (Mode.PASSWORD, Mode.ERROR)

        if mode is Mode.SEARCH:
            if search.value != state.query:
                search.value = state.query
                search.cursor_position = len(state.query)
            results.set_results(
                state.results,
                state.selected_index,
                self.engine.scroll_offset,
                self.engine.page_size,
                state.sort,
                total=len(self.engine.store),
            )
        elif mode in (Mode.DETAIL, Mode.CONFIRM_DELETE):
            detail.show_item(state.selected_item, confirm_delete=mode is Mode.CONFIRM_DELETE)
        elif mode is Mode.GENERATE:
            generator.set_generator(state.generator)
        elif mode is Mode.SHORTCUT:
            shortcuts.set_shortcuts(self.engine.config.shortcuts)
        elif mode is Mode.ERROR:
            notice.set_notice(state.error or "Unknown error", error=True, hint="Press Esc or q to quit")
        elif mode is Mode.PASSWORD:
            account = f" for {state.user_email}" if state.user_email else ""
            notice.set_notice(
                state.error or f"Unlock vault{account}",
                error=bool(state.error),
                hint="Enter to unlock, Esc to quit",
            )
        else:
            notice.set_notice(state.status_text)

        if mode is Mode.PASSWORD:
            if not password.has_focus:
                password.focus()
        elif mode is Mode.SEARCH:
            if not search.has_focus:
                search.focus()
        else:
            self.set_focus(None)

        self.sub_title = state.user_email or ""
        self.status_bar.set_status(state.message, help_line(mode))
