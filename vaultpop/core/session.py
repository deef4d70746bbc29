"""
The interactive session engine.

`SessionEngine` owns the single `SessionState` and is the only thing that
changes it. The TUI forwards key events (`handle_key`), query edits
(`set_query`) and the master password (`submit_password`), and re-renders
whenever the engine notifies its listeners.

Blocking work (every `bw` call, the external editor) never runs inside a key
handler. The engine first switches to LOADING/PROCESSING, notifies, and then
runs the call from `scheduler.defer()`, i.e. after the indicator has been
painted. While in those modes all keys are dropped, so at most one mutating
agent call is ever in flight. Each blocking operation raises a
`VaultpopError` on failure; `_run_blocking` catches it, returns to the
operation's fallback mode and shows the error as a transient message.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import yaml  # type: ignore[import-untyped]

from vaultpop.agent.client import VaultAgent
from vaultpop.agent.errors import (
    AgentError,
    EditorError,
    ParseError,
    UnavailableError,
    ValidationError,
    VaultpopError,
)
from vaultpop.agent.models import CipherType, Item
from vaultpop.config import Config, get_config, get_config_path, load_config, reload_config, write_config_text
from vaultpop.core.channel import SecretChannel
from vaultpop.core.clock import SessionClock
from vaultpop.core.keymap import BUSY_MODES, UNLOCKED_MODES, Mode, lookup
from vaultpop.core.scheduler import Scheduler, Timer
from vaultpop.core.search import SearchIndex, SearchResult, SortMode
from vaultpop.core.shutdown import ShutdownCoordinator, TokenHolder
from vaultpop.core.store import ItemStore
from vaultpop.utils.itemyaml import drafts_equal, get_create_template, item_to_yaml, validate_draft, yaml_to_item
from vaultpop.utils.password import generate_password
from vaultpop.utils.totp import generate_totp, seconds_remaining

logger = logging.getLogger(__name__)

MESSAGE_SECONDS = 2.0
GENERATOR_MESSAGE_SECONDS = 2.0
# Long enough for the "Locking vault..." frame to reach the terminal
EXIT_PAINT_DELAY = 0.1

BW_NOT_FOUND = "Bitwarden CLI (bw) not found. Install it from https://bitwarden.com/help/cli/"
NOT_LOGGED_IN = 'Not logged in to Bitwarden. Run "bw login" first.'


@dataclass
class Message:
    text: str
    kind: str = "info"  # info | success | warning | error


@dataclass
class GeneratorState:
    passphrase: bool
    password: str
    message: Message | None = None


@dataclass
class SessionState:
    mode: Mode = Mode.UNLOCKING
    query: str = ""
    sort: SortMode = SortMode.DEFAULT
    results: list[SearchResult] = field(default_factory=list)
    selected_index: int = 0
    selected_item: Item | None = None
    previous_mode: Mode | None = None
    message: Message | None = None
    error: str | None = None
    status_text: str = ""
    generator: GeneratorState | None = None
    user_email: str | None = None

    @property
    def selected_result(self) -> SearchResult | None:
        if 0 <= self.selected_index < len(self.results):
            return self.results[self.selected_index]
        return None


class SessionEngine:
    """Mode state machine for one vaultpop process."""

    def __init__(
        self,
        agent: VaultAgent,
        scheduler: Scheduler,
        config: Config | None = None,
        channel: SecretChannel | None = None,
        clock: SessionClock | None = None,
        tokens: TokenHolder | None = None,
        coordinator: ShutdownCoordinator | None = None,
        config_path: Path | None = None,
        on_exit: Callable[[], None] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.agent = agent
        self.scheduler = scheduler
        self.config = config or get_config()
        self.config_path = config_path
        self.on_exit = on_exit
        self.rng = rng

        self.tokens = tokens or (coordinator.tokens if coordinator else TokenHolder())
        self.coordinator = coordinator or ShutdownCoordinator(agent, self.tokens)
        self.channel = channel or SecretChannel(scheduler, clear_seconds=self.config.clipboard_clear_seconds)
        self.clock = clock or SessionClock(self.config.idle_threshold_seconds, now=time.time)

        self.state = SessionState()
        self.store = ItemStore()
        self.index = SearchIndex()
        self.store.subscribe(self.index.rebuild)

        self._message_timer = Timer(scheduler)
        self._generator_timer = Timer(scheduler)
        self._idle_timer = Timer(scheduler)
        self._listeners: list[Callable[[], None]] = []

    # -- plumbing -----------------------------------------------------------

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in self._listeners:
            listener()

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def page_size(self) -> int:
        return self.config.max_visible_entries

    def _set_mode(self, mode: Mode) -> None:
        if mode in UNLOCKED_MODES and self.tokens.get() is None:
            logger.error("No session token for %s mode", mode)
            self.state.error = "Vault is locked"
            mode = Mode.ERROR
        if mode is not self.state.mode:
            logger.debug("Mode %s -> %s", self.state.mode, mode)
        self.state.mode = mode

    def _token(self) -> str:
        token = self.tokens.get()
        if token is None:
            raise AgentError("Vault is locked")
        return token

    def _run_blocking(self, status: str, fallback: Mode, operation: Callable[[], None]) -> None:
        """Show `status`, then run `operation` after the next paint."""
        self.state.status_text = status
        self._set_mode(Mode.PROCESSING)
        self._changed()

        def run() -> None:
            try:
                operation()
            except VaultpopError as e:
                logger.warning("%s failed: %s", status.rstrip("."), e)
                self._set_mode(fallback)
                self.show_message(str(e), "error")
            except Exception as e:
                logger.exception("%s crashed", status.rstrip("."))
                self._set_mode(fallback)
                self.show_message(f"Unexpected error: {e}", "error")
            self.state.status_text = ""
            self._changed()

        self.scheduler.defer(run)

    # -- messages -----------------------------------------------------------

    def show_message(self, text: str, kind: str = "info", duration: float = MESSAGE_SECONDS) -> None:
        """Replace the transient message and restart its expiry timer."""
        self.state.message = Message(text, kind)
        self._message_timer.arm(duration, self._clear_message)
        self._changed()

    def _clear_message(self) -> None:
        self.state.message = None
        self._changed()

    def _show_generator_message(self, text: str, kind: str = "success") -> None:
        if self.state.generator is None:
            return
        self.state.generator.message = Message(text, kind)
        self._generator_timer.arm(GENERATOR_MESSAGE_SECONDS, self._clear_generator_message)
        self._changed()

    def _clear_generator_message(self) -> None:
        if self.state.generator is not None:
            self.state.generator.message = None
            self._changed()

    # -- startup and unlock -------------------------------------------------

    def start(self) -> None:
        self._set_mode(Mode.UNLOCKING)
        self.state.status_text = "Checking Bitwarden CLI..."
        self._arm_idle()
        self._changed()
        self.scheduler.defer(self._check_agent)

    def _check_agent(self) -> None:
        if not self.agent.check_installed():
            self._fail(BW_NOT_FOUND)
            return
        status = self.agent.get_status()
        if status.status == "unauthenticated":
            self._fail(NOT_LOGGED_IN)
            return
        self.state.user_email = status.user_email
        self.state.status_text = ""
        self._set_mode(Mode.PASSWORD)
        self._changed()

    def _fail(self, error: str) -> None:
        logger.error("%s", error)
        self.state.error = error
        self.state.status_text = ""
        self._set_mode(Mode.ERROR)
        self._changed()

    def submit_password(self, password: str) -> None:
        if self.state.mode is not Mode.PASSWORD:
            return
        self.clock.touch()
        if not password:
            self.state.error = "Password is required"
            self._changed()
            return
        self.state.error = None
        self.state.status_text = "Unlocking vault..."
        self._set_mode(Mode.LOADING)
        self._changed()
        self.scheduler.defer(lambda: self._unlock(password))

    def _unlock(self, password: str) -> None:
        result = self.agent.unlock(password)
        if not result.success or not result.session:
            self.state.error = result.error or "Failed to unlock vault"
            self.state.status_text = ""
            self._set_mode(Mode.PASSWORD)
            self._changed()
            return

        self.tokens.set(result.session)
        self.state.status_text = "Loading items..."
        self._changed()
        try:
            items = self.agent.list_items(result.session)
        except (AgentError, ParseError) as e:
            self.agent.lock(result.session)
            self.tokens.clear()
            self._fail(f"Failed to fetch items: {e}")
            return

        self.store.load(items)
        logger.info("Vault unlocked, %d items loaded", len(items))
        self.state.status_text = ""
        self._refresh_results(reset_selection=True)
        self._set_mode(Mode.SEARCH)
        self._changed()

    # -- key routing --------------------------------------------------------

    def handle_key(self, key: str, character: str | None = None) -> bool:
        """Route one key event. Returns False when the key was not used."""
        mode = self.state.mode
        if mode in BUSY_MODES:
            return False
        self.clock.touch()

        handler_name = lookup(mode, key)
        if handler_name is None:
            if mode is Mode.SHORTCUT and character and character.isprintable():
                self.select_shortcut(character)
                return True
            if mode is Mode.CONFIRM_DELETE:
                self._answer_delete(character)
                return True
            return False

        if handler_name == "jump":
            self.jump(int(key[-1]))
        else:
            getattr(self, handler_name)()
        return True

    # -- search and selection -----------------------------------------------

    def set_query(self, query: str) -> None:
        if self.state.mode is not Mode.SEARCH:
            return
        self.clock.touch()
        if query == self.state.query:
            return
        self.state.query = query
        self._refresh_results(reset_selection=True)
        self._changed()

    def _refresh_results(self, reset_selection: bool = False) -> None:
        self.state.results = self.index.search(self.state.query, self.state.sort)
        if reset_selection:
            self.state.selected_index = 0
        self._clamp_selection()

    def _clamp_selection(self) -> None:
        count = len(self.state.results)
        if count == 0:
            self.state.selected_index = 0
        else:
            self.state.selected_index = min(max(self.state.selected_index, 0), count - 1)

    def _move(self, delta: int) -> None:
        self.state.selected_index += delta
        self._clamp_selection()
        self._changed()

    def move_up(self) -> None:
        self._move(-1)

    def move_down(self) -> None:
        self._move(1)

    def page_up(self) -> None:
        self._move(-max(1, self.page_size // 2))

    def page_down(self) -> None:
        self._move(max(1, self.page_size // 2))

    @property
    def scroll_offset(self) -> int:
        return max(0, self.state.selected_index - self.page_size // 2)

    def visible_window(self) -> tuple[int, int]:
        """[start, end) of the results currently on screen."""
        start = self.scroll_offset
        return start, min(start + self.page_size, len(self.state.results))

    def jump(self, digit: int) -> None:
        """Open the result shown next to `digit` (1-9, then 0 for the tenth)."""
        position = 9 if digit == 0 else digit - 1
        target = self.scroll_offset + position
        if target < len(self.state.results):
            self.state.selected_index = target
            self._enter_detail(self.state.results[target].item)

    def toggle_sort(self) -> None:
        self.state.sort = self.state.sort.toggled()
        self._refresh_results()
        self.show_message(f"Sort: {'recently modified' if self.state.sort is SortMode.DATE else 'best match'}")

    def clear_query(self) -> None:
        self.state.query = ""
        self._refresh_results(reset_selection=True)
        self._changed()

    # -- detail -------------------------------------------------------------

    def _enter_detail(self, item: Item) -> None:
        self.state.selected_item = item
        self._set_mode(Mode.DETAIL)
        self._changed()

    def open_selected(self) -> None:
        result = self.state.selected_result
        if result is not None:
            self._enter_detail(result.item)

    def back_to_search(self) -> None:
        self.state.selected_item = None
        self._set_mode(Mode.SEARCH)
        self._changed()

    def active_item(self) -> Item | None:
        """Detail item first, then the highlighted search result."""
        if self.state.mode in (Mode.DETAIL, Mode.CONFIRM_DELETE) and self.state.selected_item:
            return self.state.selected_item
        result = self.state.selected_result
        return result.item if result else None

    # -- copy ---------------------------------------------------------------

    def copy_username(self) -> None:
        self.copy_field("username")

    def copy_password(self) -> None:
        self.copy_field("password")

    def copy_totp(self) -> None:
        self.copy_field("totp")

    def copy_field(self, field_name: str) -> None:
        item = self.active_item()
        if item is None:
            self.show_message("No item selected", "warning")
            return
        try:
            value, message = self._resolve_field(item, field_name)
        except UnavailableError as e:
            self.show_message(str(e), "warning")
            return
        except AgentError as e:
            self.show_message(str(e), "error")
            return

        result = self.channel.copy(value)
        if not result.success:
            self.show_message(f"Copy failed: {result.error}", "error")
            return
        logger.debug("Copied %s of item %s", field_name, item.id)
        self.show_message(message, "success")

    def _resolve_field(self, item: Item, field_name: str) -> tuple[str, str]:
        """Return (value, confirmation message). Raises UnavailableError."""
        if field_name == "username":
            value = (
                (item.login.username if item.login else None)
                or (item.identity.email if item.identity else None)
                or (item.card.cardholder_name if item.card else None)
            )
            if not value:
                raise UnavailableError("Username")
            return value, "Username copied!"

        if field_name == "password":
            value = (item.login.password if item.login else None) or (item.card.number if item.card else None)
            if not value:
                raise UnavailableError("Password")
            return value, "Password copied!"

        if field_name == "totp":
            seed = item.login.totp if item.login else None
            if not seed:
                raise UnavailableError("TOTP")
            code = generate_totp(seed)
            if code is None:
                code = self.agent.get_totp(item.id, self._token())
            if code is None:
                raise AgentError("Failed to generate TOTP")
            remaining = seconds_remaining(seed)
            if remaining <= self.config.totp_expiry_warning_seconds:
                return code, f"TOTP copied! (expires in {remaining}s)"
            return code, "TOTP copied!"

        raise ValueError(f"Unknown field {field_name!r}")

    # -- mutations ----------------------------------------------------------

    def _reload_store(self, action: str) -> bool:
        """Full re-list after a mutation. On failure the old snapshot stays."""
        try:
            items = self.agent.list_items(self._token())
        except (AgentError, ParseError) as e:
            logger.warning("%s, but list refresh failed: %s", action, e)
            self.show_message(f"{action}, but list refresh failed: {e}", "warning")
            return False
        self.store.load(items)
        self._refresh_results()
        return True

    def sync(self) -> None:
        origin = self.state.mode
        self._run_blocking("Syncing...", origin, lambda: self._do_sync(origin))

    def _do_sync(self, origin: Mode) -> None:
        token = self._token()
        result = self.agent.sync(token)
        if not result.success:
            raise AgentError(f"Sync failed: {result.error}")
        try:
            items = self.agent.list_items(token)
        except (AgentError, ParseError) as e:
            raise AgentError(f"Refresh failed: {e}") from e

        self.store.load(items)
        self._refresh_results()
        current = self.state.selected_item
        if origin is Mode.DETAIL and current is not None:
            refreshed = self.store.find_by_id(current.id)
            if refreshed is not None:
                self.state.selected_item = refreshed
                self._set_mode(Mode.DETAIL)
            else:
                self.state.selected_item = None
                self._set_mode(Mode.SEARCH)
        else:
            self._set_mode(Mode.SEARCH)
        self.show_message(f"Synced! {len(items)} items loaded", "success")

    def create_item(self) -> None:
        self._run_blocking("Waiting for editor...", Mode.SEARCH, self._do_create)

    def _do_create(self) -> None:
        content = self.channel.edit(get_create_template(), "new-login.yaml")
        if content is None:
            self._set_mode(Mode.SEARCH)
            self.show_message("Create cancelled")
            return
        draft = yaml_to_item(content)
        if draft is None:
            raise ValidationError("Invalid YAML or missing name")
        problem = validate_draft(draft)
        if problem:
            raise ValidationError(problem)

        self.state.status_text = "Creating item..."
        self._changed()
        result = self.agent.create_item(self._token(), draft.to_item_dict())
        if not result.success:
            raise AgentError(f"Create failed: {result.error}")

        logger.info("Created item %s", result.item.id if result.item else "?")
        refreshed = self._reload_store("Item created")
        created = None
        if result.item is not None:
            created = self.store.find_by_id(result.item.id) or result.item
        if created is not None:
            self.state.selected_item = created
            self._set_mode(Mode.DETAIL)
        else:
            self._set_mode(Mode.SEARCH)
        if refreshed:
            self.show_message(f"Created {draft.name}!", "success")

    def edit_item(self) -> None:
        item = self.state.selected_item
        if item is None:
            return
        if item.type is not CipherType.LOGIN:
            self.show_message(f"Cannot edit {item.type.label} items, only logins", "error")
            return
        self._run_blocking("Waiting for editor...", Mode.DETAIL, lambda: self._do_edit(item))

    def _do_edit(self, item: Item) -> None:
        content = self.channel.edit(item_to_yaml(item), "edit-login.yaml")
        if content is None:
            self._set_mode(Mode.DETAIL)
            self.show_message("Edit cancelled")
            return
        draft = yaml_to_item(content)
        if draft is None:
            raise ValidationError("Invalid YAML or missing name")
        problem = validate_draft(draft)
        if problem:
            raise ValidationError(problem)
        if drafts_equal(item, draft):
            self._set_mode(Mode.DETAIL)
            self.show_message("No changes")
            return

        self.state.status_text = "Saving changes..."
        self._changed()
        result = self.agent.edit_item(self._token(), item.id, draft.merge_onto(item))
        if not result.success:
            raise AgentError(f"Edit failed: {result.error}")

        logger.info("Edited item %s", item.id)
        refreshed = self._reload_store("Item saved")
        self.state.selected_item = self.store.find_by_id(item.id) or item
        self._set_mode(Mode.DETAIL)
        if refreshed:
            self.show_message("Saved!", "success")

    def confirm_delete(self) -> None:
        if self.state.selected_item is None:
            return
        self._set_mode(Mode.CONFIRM_DELETE)
        self._changed()

    def _answer_delete(self, character: str | None) -> None:
        item = self.state.selected_item
        if item is None or character not in ("y", "Y"):
            self._set_mode(Mode.DETAIL if item else Mode.SEARCH)
            self.show_message("Delete cancelled")
            return
        self._run_blocking("Deleting...", Mode.DETAIL, lambda: self._do_delete(item))

    def _do_delete(self, item: Item) -> None:
        result = self.agent.delete_item(self._token(), item.id)
        if not result.success:
            raise AgentError(f"Delete failed: {result.error}")

        logger.info("Deleted item %s", item.id)
        refreshed = self._reload_store("Item deleted")
        self.state.selected_item = None
        self._set_mode(Mode.SEARCH)
        self._refresh_results(reset_selection=True)
        if refreshed:
            self.show_message(f"Deleted {item.name}", "success")

    # -- generator ----------------------------------------------------------

    def open_generator(self) -> None:
        passphrase = self.config.password_generation.type == "passphrase"
        self.state.previous_mode = self.state.mode
        self.state.generator = GeneratorState(passphrase=passphrase, password=self._generate(passphrase))
        self._set_mode(Mode.GENERATE)
        self._changed()

    def _generate(self, passphrase: bool) -> str:
        return generate_password(self.config.password_generation, passphrase=passphrase, rng=self.rng)

    def generator_regenerate(self) -> None:
        gen = self.state.generator
        if gen is None:
            return
        gen.password = self._generate(gen.passphrase)
        self._changed()

    def generator_toggle_type(self) -> None:
        gen = self.state.generator
        if gen is None:
            return
        gen.passphrase = not gen.passphrase
        gen.password = self._generate(gen.passphrase)
        self._changed()

    def generator_copy(self) -> None:
        gen = self.state.generator
        if gen is None:
            return
        result = self.channel.copy(gen.password)
        if result.success:
            self._show_generator_message("Copied!")
        else:
            self._show_generator_message(f"Copy failed: {result.error}", "error")

    def generator_copy_and_exit(self) -> None:
        gen = self.state.generator
        if gen is None:
            return
        result = self.channel.copy(gen.password)
        if not result.success:
            self._show_generator_message(f"Copy failed: {result.error}", "error")
            return
        self.close_generator()
        self.show_message("Password copied!", "success")

    def close_generator(self) -> None:
        self._generator_timer.cancel()
        self.state.generator = None
        self._set_mode(self.state.previous_mode or Mode.SEARCH)
        self.state.previous_mode = None
        self._changed()

    # -- shortcuts and config -----------------------------------------------

    def enter_shortcuts(self) -> None:
        self._set_mode(Mode.SHORTCUT)
        self._changed()

    def select_shortcut(self, character: str) -> None:
        wanted = character.lower()
        for shortcut in self.config.shortcuts:
            if shortcut.key.lower() == wanted:
                self.state.query = shortcut.search
                self._refresh_results(reset_selection=True)
                self._set_mode(Mode.SEARCH)
                self._changed()
                return
        self.show_message(f"No shortcut for '{character}'", "warning")

    def edit_config(self) -> None:
        self._run_blocking("Waiting for editor...", Mode.SHORTCUT, self._do_edit_config)

    def _do_edit_config(self) -> None:
        path = self.config_path or get_config_path()
        try:
            original = path.read_text(encoding="utf-8") if path.exists() else ""
        except OSError as e:
            raise EditorError(f"Cannot read config: {e}") from e
        if not original:
            original = yaml.safe_dump(self.config.to_dict(), sort_keys=False)

        content = self.channel.edit(original, "config.yaml")
        if content is None:
            self._set_mode(Mode.SHORTCUT)
            self.show_message("Config edit cancelled")
            return
        if content == original:
            self._set_mode(Mode.SHORTCUT)
            self.show_message("No changes")
            return

        try:
            parsed = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ValidationError("Invalid YAML, config not saved") from e
        if not isinstance(parsed, dict):
            raise ValidationError("Config must be a YAML mapping, not saved")

        try:
            write_config_text(content, path)
        except OSError as e:
            raise EditorError(f"Cannot write config: {e}") from e

        self.apply_config(reload_config() if self.config_path is None else load_config(path))
        self._set_mode(Mode.SHORTCUT)
        self.show_message("Config reloaded", "success")

    def apply_config(self, config: Config) -> None:
        """Swap in a freshly loaded config."""
        self.config = config
        self.clock.set_threshold(config.idle_threshold_seconds)
        self.channel.clear_seconds = config.clipboard_clear_seconds
        self._arm_idle()
        self._refresh_results()

    # -- idle lock and exit -------------------------------------------------

    def _arm_idle(self) -> None:
        self._idle_timer.arm(self.clock.poll_interval, self._check_idle)

    def _check_idle(self) -> None:
        if self.state.mode is Mode.EXITING:
            return
        if self.clock.check_expired():
            logger.info("Idle for %.0fs, closing", self.clock.threshold_seconds)
            self.request_exit()
            return
        self._arm_idle()

    def request_exit(self) -> None:
        if self.state.mode is Mode.EXITING:
            return
        self._message_timer.cancel()
        self._generator_timer.cancel()
        self._idle_timer.cancel()
        self.channel.close()
        self.state.message = None
        self.state.status_text = "Locking vault..."
        self._set_mode(Mode.EXITING)
        self._changed()
        self.scheduler.call_later(EXIT_PAINT_DELAY, self._finish_exit)

    def _finish_exit(self) -> None:
        self.coordinator.lock()
        if self.on_exit is not None:
            self.on_exit()
