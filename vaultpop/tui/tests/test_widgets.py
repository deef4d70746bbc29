"""Tests for TUI widgets: ResultsList, DetailPanel, GeneratorPanel, StatusBar."""

from __future__ import annotations

from vaultpop.agent.models import Item
from vaultpop.config import Shortcut
from vaultpop.core.search import SearchResult, SortMode
from vaultpop.core.session import GeneratorState, Message
from vaultpop.tui.widgets import (
    DetailPanel,
    GeneratorPanel,
    NoticePanel,
    ResultsList,
    ShortcutPanel,
    StatusBar,
    mask_card_number,
)


def _results(items):
    return [SearchResult(item) for item in items]


class TestResultsList:
    def test_empty_vault(self):
        widget = ResultsList()
        widget.set_results([], 0, 0, 30, total=0)
        assert "Vault is empty" in widget._format()

    def test_no_matches(self):
        widget = ResultsList()
        widget.set_results([], 0, 0, 30, total=4)
        assert "No matches" in widget._format()

    def test_rows_and_footer(self, sample_items):
        widget = ResultsList()
        widget.set_results(_results(sample_items), 1, 0, 30, total=4)
        lines = widget._format().splitlines()
        assert lines[0].startswith("1 ")
        assert "Zebra Mail" in lines[0]
        assert lines[1].startswith("[reverse]2 ")
        assert "GitHub Personal" in lines[1]
        assert "Showing 1-4 of 4" in lines[-1]
        assert "(by date)" not in lines[-1]

    def test_window_and_date_marker(self, make_login):
        items = [make_login(f"Item {n:02d}") for n in range(12)]
        widget = ResultsList()
        widget.set_results(_results(items), 5, 3, 5, SortMode.DATE, total=12)
        lines = widget._format().splitlines()
        assert lines[0].startswith("1 ")
        assert "Item 03" in lines[0]
        assert "Item 08" not in widget._format()
        assert "Showing 4-8 of 12" in lines[-1]
        assert "(by date)" in lines[-1]

    def test_favorite_and_type(self, make_login, card_item):
        widget = ResultsList()
        widget.set_results(_results([make_login("Fav", favorite=True), card_item]), 0, 0, 30, total=2)
        text = widget._format()
        assert "[yellow]*[/yellow]" in text
        assert "CARD" in text
        assert "Visa" in text

    def test_markup_in_names_is_escaped(self, make_login):
        widget = ResultsList()
        widget.set_results(_results([make_login("[bold]Sneaky")]), 0, 0, 30, total=1)
        assert "\\[bold]Sneaky" in widget._format()

    def test_digits_stop_after_ten(self, make_login):
        items = [make_login(f"Item {n:02d}") for n in range(12)]
        widget = ResultsList()
        widget.set_results(_results(items), 0, 0, 12, total=12)
        lines = widget._format().splitlines()
        assert lines[9].startswith("0 ")
        assert lines[10].startswith("  ")


class TestDetailPanel:
    def test_login_masks_password(self, make_login):
        panel = DetailPanel()
        panel.show_item(make_login("GitHub", uris=["https://github.com", "https://gist.github.com"], totp="ABC"))
        text = panel._format()
        assert "user@example.com" in text
        assert "hunter2" not in text
        assert "••••••••" in text
        assert "configured" in text
        assert "https://gist.github.com" in text

    def test_card_masks_number_and_code(self, card_item):
        panel = DetailPanel()
        panel.show_item(card_item)
        text = panel._format()
        assert "**** **** **** 1111" in text
        assert "4111111111111111" not in text
        assert "123" not in text
        assert "12/2030" in text

    def test_identity(self, identity_item):
        panel = DetailPanel()
        panel.show_item(identity_item)
        text = panel._format()
        assert "Jane Doe" in text
        assert "jane@example.com" in text

    def test_note(self, note_item):
        panel = DetailPanel()
        panel.show_item(note_item)
        text = panel._format()
        assert "network: home" in text
        assert "NOTE" in text

    def test_ssh_public_key_truncated(self):
        item = Item.from_dict(
            {
                "id": "id-ssh",
                "type": 5,
                "name": "Server",
                "sshKey": {"privateKey": "PRIVATE", "publicKey": "ssh-ed25519 " + "A" * 80, "keyFingerprint": "SHA256:x"},
            }
        )
        panel = DetailPanel()
        panel.show_item(item)
        text = panel._format()
        assert "SHA256:x" in text
        assert "A" * 80 not in text
        assert "..." in text
        assert "PRIVATE" not in text

    def test_hidden_custom_field(self, make_login):
        item = make_login("Api", fields=[{"name": "Token", "value": "t0k", "type": 1}, {"name": "Env", "value": "prod", "type": 0}])
        panel = DetailPanel()
        panel.show_item(item)
        text = panel._format()
        assert "t0k" not in text
        assert "prod" in text

    def test_markers_and_delete_prompt(self, make_login):
        panel = DetailPanel()
        panel.show_item(make_login("Bank", favorite=True, reprompt=1), confirm_delete=True)
        text = panel._format()
        assert "favorite" in text
        assert "re-prompt" in text
        assert "Delete 'Bank'? (y/N)" in text

    def test_empty(self):
        assert DetailPanel()._format() == ""


class TestGeneratorPanel:
    def test_shows_password_and_message(self):
        panel = GeneratorPanel()
        panel.set_generator(GeneratorState(passphrase=True, password="Oak-Rain-7", message=Message("Copied!", "success")))
        text = panel._format()
        assert "Oak-Rain-7" in text
        assert "Passphrase" in text
        assert "[green]Copied![/green]" in text

    def test_random_type(self):
        panel = GeneratorPanel()
        panel.set_generator(GeneratorState(passphrase=False, password="x"))
        assert "Random" in panel._format()


class TestShortcutPanel:
    def test_empty(self):
        panel = ShortcutPanel()
        panel.set_shortcuts(())
        assert "No shortcuts configured" in panel._format()

    def test_lists_shortcuts(self):
        panel = ShortcutPanel()
        panel.set_shortcuts((Shortcut(key="g", search="github", description="GitHub"), Shortcut(key="b", search="bank")))
        text = panel._format()
        assert "GitHub" in text
        assert "bank" in text


class TestNoticeAndStatus:
    def test_error_notice(self):
        panel = NoticePanel()
        panel.set_notice("bw not found", error=True, hint="Press q")
        text = panel._format()
        assert "[bold red]bw not found[/bold red]" in text
        assert "Press q" in text

    def test_status_prefers_message(self):
        bar = StatusBar()
        bar.set_status(Message("Deleted x", "success"), "^U Copy username")
        assert bar._format() == "[green]Deleted x[/green]"

    def test_status_help_line(self):
        bar = StatusBar()
        bar.set_status(None, "^U Copy username")
        assert "^U Copy username" in bar._format()


class TestMaskCardNumber:
    def test_mask(self):
        assert mask_card_number("4111111111111111") == "**** **** **** 1111"
        assert mask_card_number(None) == ""
