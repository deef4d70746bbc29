"""
Mode set and per-mode key registry for the session engine.

Keys use Textual's key names ("ctrl+u", "escape", "pagedown", ...). Each
mode maps key → (handler_name, description); `SessionEngine.handle_key`
looks the handler up by name. Printable characters not listed here are
handled by the mode itself (shortcut triggers, delete confirmation).
"""

from __future__ import annotations

from enum import StrEnum


class Mode(StrEnum):
    UNLOCKING = "unlocking"
    PASSWORD = "password"
    LOADING = "loading"
    SEARCH = "search"
    DETAIL = "detail"
    SHORTCUT = "shortcut"
    GENERATE = "generate"
    CONFIRM_DELETE = "confirm_delete"
    PROCESSING = "processing"
    EXITING = "exiting"
    ERROR = "error"


# Modes in which every key is dropped
BUSY_MODES = frozenset({Mode.UNLOCKING, Mode.LOADING, Mode.PROCESSING, Mode.EXITING})

# Modes that require a live session token
UNLOCKED_MODES = frozenset(
    {
        Mode.SEARCH,
        Mode.DETAIL,
        Mode.SHORTCUT,
        Mode.GENERATE,
        Mode.PROCESSING,
        Mode.CONFIRM_DELETE,
    }
)

JUMP_KEYS = ("1", "2", "3", "4", "5", "6", "7", "8", "9", "0")

GLOBAL_KEYS: dict[str, tuple[str, str]] = {
    "ctrl+c": ("request_exit", "Quit"),
    "ctrl+d": ("request_exit", "Quit"),
}

KEYMAP: dict[Mode, dict[str, tuple[str, str]]] = {
    Mode.SEARCH: {
        "enter": ("open_selected", "Show details"),
        "escape": ("request_exit", "Quit"),
        "up": ("move_up", "Previous result"),
        "down": ("move_down", "Next result"),
        "pageup": ("page_up", "Half page up"),
        "pagedown": ("page_down", "Half page down"),
        "ctrl+s": ("enter_shortcuts", "Shortcuts"),
        "ctrl+u": ("copy_username", "Copy username"),
        "ctrl+p": ("copy_password", "Copy password"),
        "ctrl+t": ("copy_totp", "Copy TOTP"),
        "ctrl+g": ("open_generator", "Generate password"),
        "ctrl+n": ("create_item", "New login"),
        "ctrl+o": ("toggle_sort", "Toggle sort"),
        "ctrl+x": ("clear_query", "Clear search"),
        "ctrl+r": ("sync", "Sync vault"),
        **{f"alt+{digit}": ("jump", "Open result") for digit in JUMP_KEYS},
    },
    Mode.DETAIL: {
        "escape": ("back_to_search", "Back"),
        "backspace": ("back_to_search", "Back"),
        "ctrl+u": ("copy_username", "Copy username"),
        "ctrl+p": ("copy_password", "Copy password"),
        "ctrl+t": ("copy_totp", "Copy TOTP"),
        "ctrl+e": ("edit_item", "Edit"),
        "delete": ("confirm_delete", "Delete"),
        "ctrl+g": ("open_generator", "Generate password"),
        "ctrl+r": ("sync", "Sync vault"),
    },
    Mode.SHORTCUT: {
        "escape": ("back_to_search", "Back"),
        "backspace": ("back_to_search", "Back"),
        "ctrl+e": ("edit_config", "Edit config"),
    },
    Mode.GENERATE: {
        "enter": ("generator_copy_and_exit", "Copy & close"),
        "ctrl+p": ("generator_copy", "Copy"),
        "tab": ("generator_toggle_type", "Random / passphrase"),
        "left": ("generator_toggle_type", "Random / passphrase"),
        "right": ("generator_toggle_type", "Random / passphrase"),
        "ctrl+r": ("generator_regenerate", "Regenerate"),
        "escape": ("close_generator", "Cancel"),
        "backspace": ("close_generator", "Cancel"),
    },
    Mode.PASSWORD: {
        "escape": ("request_exit", "Quit"),
    },
    Mode.ERROR: {
        "escape": ("request_exit", "Quit"),
        "enter": ("request_exit", "Quit"),
        "q": ("request_exit", "Quit"),
    },
}


def lookup(mode: Mode, key: str) -> str | None:
    """Handler name bound to `key` in `mode`, global keys included."""
    if key in GLOBAL_KEYS:
        return GLOBAL_KEYS[key][0]
    entry = KEYMAP.get(mode, {}).get(key)
    return entry[0] if entry else None


def help_line(mode: Mode) -> str:
    """Compact key legend for the status bar."""
    seen: set[str] = set()
    parts = []
    for key, (handler, description) in KEYMAP.get(mode, {}).items():
        if handler in seen or key.startswith("alt+") or key in ("up", "down", "pageup", "pagedown"):
            continue
        seen.add(handler)
        parts.append(f"{_pretty(key)} {description}")
    return "  ".join(parts)


def _pretty(key: str) -> str:
    if key.startswith("ctrl+"):
        return "^" + key[5:].upper()
    return {"escape": "Esc", "enter": "Enter", "backspace": "Bksp", "delete": "Del", "tab": "Tab"}.get(
        key, key
    )
