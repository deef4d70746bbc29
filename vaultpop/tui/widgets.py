"""
Custom Textual widgets for the vaultpop TUI.

ResultsList: ranked search results with positional digits and a window footer.
DetailPanel: every field of one item, secrets masked.
GeneratorPanel: generated password with type and copy feedback.
ShortcutPanel: configured single-key searches.
NoticePanel: unlocking / processing / locking / fatal error notices.
StatusBar: transient message, or the key legend for the current mode.

Every widget keeps its inputs, renders markup in `_format()`, and escapes
vault data before it reaches markup.
"""

from __future__ import annotations

from rich.markup import escape
from textual.content import Content
from textual.widgets import Static

from vaultpop.agent.models import CipherType, Item
from vaultpop.config import Shortcut
from vaultpop.core.search import SearchResult, SortMode
from vaultpop.core.session import GeneratorState, Message

DIGITS = "1234567890"
MESSAGE_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}
PUBLIC_KEY_PREVIEW = 50


def mask_card_number(number: str | None) -> str:
    if not number:
        return ""
    return f"**** **** **** {number[-4:]}"


class _FormattedStatic(Static):
    def __init__(
        self,
        *,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(
            Content.from_markup(self._format()),
            name=name,
            id=id,
            classes=classes,
        )

    def _format(self) -> str:
        raise NotImplementedError

    def _refresh(self) -> None:
        self.update(Content.from_markup(self._format()))


class ResultsList(_FormattedStatic):
    """Visible window of the ranked results."""

    def __init__(self, **kwargs) -> None:
        self._results: list[SearchResult] = []
        self._selected = 0
        self._offset = 0
        self._page_size = 30
        self._sort = SortMode.DEFAULT
        self._total = 0
        super().__init__(**kwargs)

    def _format(self) -> str:
        if not self._results:
            if self._total == 0:
                return "[dim]Vault is empty[/dim]"
            return "[dim]No matches[/dim]"

        end = min(self._offset + self._page_size, len(self._results))
        lines = []
        for idx in range(self._offset, end):
            item = self._results[idx].item
            pos = idx - self._offset
            digit = DIGITS[pos] if pos < len(DIGITS) else " "
            star = "[yellow]*[/yellow]" if item.favorite else " "
            label = f"[dim]{item.type.label:<5}[/dim]"
            subtitle = f" [dim]{escape(item.subtitle)}[/dim]" if item.subtitle else ""
            line = f"{digit} {star} {label} {escape(item.name) or '[dim](no name)[/dim]'}{subtitle}"
            if idx == self._selected:
                line = f"[reverse]{line}[/reverse]"
            lines.append(line)

        sort = " [dim](by date)[/dim]" if self._sort is SortMode.DATE else ""
        lines.append("")
        lines.append(f"[dim]Showing {self._offset + 1}-{end} of {len(self._results)}[/dim]{sort}")
        return "\n".join(lines)

    def set_results(
        self,
        results: list[SearchResult],
        selected: int,
        offset: int,
        page_size: int,
        sort: SortMode = SortMode.DEFAULT,
        total: int = 0,
    ) -> None:
        self._results = results
        self._selected = selected
        self._offset = offset
        self._page_size = page_size
        self._sort = sort
        self._total = total
        self._refresh()


class DetailPanel(_FormattedStatic):
    """Fields of the item opened from the results."""

    def __init__(self, **kwargs) -> None:
        self._item: Item | None = None
        self._confirm_delete = False
        super().__init__(**kwargs)

    @staticmethod
    def _row(label: str, value: str | None) -> str | None:
        if not value:
            return None
        return f"[dim]{escape(label):<12}[/dim] {escape(value)}"

    def _fields(self, item: Item) -> list[str | None]:
        rows: list[str | None] = []
        if item.type is CipherType.LOGIN and item.login:
            login = item.login
            rows.append(self._row("Username", login.username))
            rows.append(self._row("Password", "••••••••" if login.password else None))
            rows.append(self._row("TOTP", "configured" if login.totp else None))
            for idx, uri in enumerate(item.uris):
                rows.append(self._row("URL" if idx == 0 else "", uri))
        elif item.type is CipherType.CARD and item.card:
            card = item.card
            rows.append(self._row("Cardholder", card.cardholder_name))
            rows.append(self._row("Brand", card.brand))
            rows.append(self._row("Number", mask_card_number(card.number)))
            if card.exp_month or card.exp_year:
                rows.append(self._row("Expires", f"{card.exp_month or '??'}/{card.exp_year or '????'}"))
            rows.append(self._row("CVV", "•••" if card.code else None))
        elif item.type is CipherType.IDENTITY and item.identity:
            ident = item.identity
            rows.append(self._row("Name", ident.full_name))
            rows.append(self._row("Email", ident.email))
            rows.append(self._row("Phone", ident.phone))
            location = ", ".join(p for p in (ident.address1, ident.city, ident.state, ident.postal_code, ident.country) if p)
            rows.append(self._row("Address", location))
        elif item.type is CipherType.SSH_KEY and item.ssh_key:
            key = item.ssh_key
            rows.append(self._row("Fingerprint", key.key_fingerprint))
            public = key.public_key or ""
            if len(public) > PUBLIC_KEY_PREVIEW:
                public = public[:PUBLIC_KEY_PREVIEW] + "..."
            rows.append(self._row("Public key", public))
        for f in item.fields:
            rows.append(self._row(f.name, "••••••••" if f.hidden else f.value))
        return rows

    def _format(self) -> str:
        item = self._item
        if item is None:
            return ""
        markers = []
        if item.favorite:
            markers.append("[yellow]* favorite[/yellow]")
        if item.reprompt:
            markers.append("[magenta]re-prompt[/magenta]")
        header = f"[bold]{escape(item.name)}[/bold]  [dim]{item.type.label}[/dim]"
        if markers:
            header += "  " + " ".join(markers)

        lines = [header, ""]
        lines.extend(row for row in self._fields(item) if row)
        if item.notes:
            lines.append("")
            lines.append("[dim]Notes[/dim]")
            lines.extend(escape(line) for line in item.notes.splitlines())
        if item.revision_date:
            lines.append("")
            lines.append(f"[dim]Modified {escape(item.revision_date)}[/dim]")
        if self._confirm_delete:
            lines.append("")
            lines.append(f"[bold red]Delete '{escape(item.name)}'? (y/N)[/bold red]")
        return "\n".join(lines)

    def show_item(self, item: Item | None, confirm_delete: bool = False) -> None:
        self._item = item
        self._confirm_delete = confirm_delete
        self._refresh()


class GeneratorPanel(_FormattedStatic):
    def __init__(self, **kwargs) -> None:
        self._state: GeneratorState | None = None
        super().__init__(**kwargs)

    def _format(self) -> str:
        gen = self._state
        if gen is None:
            return ""
        kind = "Passphrase" if gen.passphrase else "Random"
        lines = [
            f"[bold]Password generator[/bold]  [dim]{kind}[/dim]",
            "",
            f"[bold green]{escape(gen.password)}[/bold green]",
            "",
        ]
        if gen.message:
            color = MESSAGE_STYLES.get(gen.message.kind, "cyan")
            lines.append(f"[{color}]{escape(gen.message.text)}[/{color}]")
        return "\n".join(lines)

    def set_generator(self, state: GeneratorState | None) -> None:
        self._state = state
        self._refresh()


class ShortcutPanel(_FormattedStatic):
    def __init__(self, **kwargs) -> None:
        self._shortcuts: tuple[Shortcut, ...] = ()
        super().__init__(**kwargs)

    def _format(self) -> str:
        lines = ["[bold]Shortcuts[/bold]", ""]
        if not self._shortcuts:
            lines.append("[dim]No shortcuts configured. Press ^E to edit the config file.[/dim]")
        for shortcut in self._shortcuts:
            lines.append(f"  [bold cyan]{escape(shortcut.key)}[/bold cyan]  {escape(shortcut.label)}")
        return "\n".join(lines)

    def set_shortcuts(self, shortcuts: tuple[Shortcut, ...]) -> None:
        self._shortcuts = shortcuts
        self._refresh()


class NoticePanel(_FormattedStatic):
    """Centered text for modes without their own view."""

    def __init__(self, **kwargs) -> None:
        self._text = ""
        self._error = False
        self._hint = ""
        super().__init__(**kwargs)

    def _format(self) -> str:
        style = "bold red" if self._error else "bold"
        lines = [f"[{style}]{escape(self._text)}[/{style}]"] if self._text else []
        if self._hint:
            lines.append("")
            lines.append(f"[dim]{escape(self._hint)}[/dim]")
        return "\n".join(lines)

    def set_notice(self, text: str, error: bool = False, hint: str = "") -> None:
        self._text = text
        self._error = error
        self._hint = hint
        self._refresh()


class StatusBar(_FormattedStatic):
    """Bottom bar: the transient message, else the key legend."""

    DEFAULT_CSS = """
    StatusBar {
        dock: bottom;
        height: 1;
        background: $surface;
        padding: 0 1;
    }
    """

    def __init__(self, **kwargs) -> None:
        self._message: Message | None = None
        self._help = ""
        super().__init__(**kwargs)

    def _format(self) -> str:
        if self._message:
            color = MESSAGE_STYLES.get(self._message.kind, "cyan")
            return f"[{color}]{escape(self._message.text)}[/{color}]"
        return f"[dim]{escape(self._help)}[/dim]"

    def set_status(self, message: Message | None, help_text: str = "") -> None:
        self._message = message
        self._help = help_text
        self._refresh()
