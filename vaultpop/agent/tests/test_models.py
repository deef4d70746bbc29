"""Tests for the vault item models and their JSON boundary."""

from __future__ import annotations

import pytest

from vaultpop.agent.errors import ParseError
from vaultpop.agent.models import CipherType, CustomField, Item, LoginData


class TestFromDict:
    def test_login(self, make_login):
        item = make_login("GitHub", uris=["https://github.com", "https://gist.github.com"], totp="JBSWY3DPEHPK3PXP")
        assert item.type is CipherType.LOGIN
        assert item.login.username == "user@example.com"
        assert item.login.totp == "JBSWY3DPEHPK3PXP"
        assert item.uris == ["https://github.com", "https://gist.github.com"]
        assert item.card is None

    def test_card(self, card_item):
        assert card_item.type is CipherType.CARD
        assert card_item.card.cardholder_name == "Jane Doe"
        assert card_item.card.exp_year == "2030"
        assert card_item.login is None

    def test_identity_full_name(self, identity_item):
        assert identity_item.identity.full_name == "Jane Doe"

    def test_secure_note_has_no_payload(self, note_item):
        assert note_item.type is CipherType.SECURE_NOTE
        assert (note_item.login, note_item.card, note_item.identity, note_item.ssh_key) == (None,) * 4

    def test_ssh_key(self):
        item = Item.from_dict(
            {"id": "k", "type": 5, "name": "Server", "sshKey": {"publicKey": "ssh-ed25519 AAAA", "keyFingerprint": "SHA256:x"}}
        )
        assert item.ssh_key.public_key == "ssh-ed25519 AAAA"
        assert item.subtitle == "SHA256:x"

    def test_reprompt_and_favorite(self):
        item = Item.from_dict({"id": "a", "type": 2, "name": "n", "favorite": True, "reprompt": 1})
        assert item.favorite is True
        assert item.reprompt is True

    def test_hidden_custom_field(self):
        item = Item.from_dict(
            {"id": "a", "type": 2, "name": "n", "fields": [{"name": "PIN", "value": "1234", "type": 1}, {"bad": 1}]}
        )
        assert item.fields == (CustomField(name="PIN", value="1234", type=1),)
        assert item.fields[0].hidden is True

    @pytest.mark.parametrize(
        "data",
        [
            "not a dict",
            {"type": 1, "name": "no id"},
            {"id": "a", "type": 42, "name": "unknown type"},
            {"id": "a", "name": "missing type"},
        ],
    )
    def test_rejects_bad_input(self, data):
        with pytest.raises(ParseError):
            Item.from_dict(data)


class TestPayloadInvariant:
    def test_login_without_payload(self):
        with pytest.raises(ValueError, match="no login payload"):
            Item(id="a", type=CipherType.LOGIN)

    def test_note_with_login_payload(self):
        with pytest.raises(ValueError, match="carries a login payload"):
            Item(id="a", type=CipherType.SECURE_NOTE, login=LoginData())


class TestSubtitle:
    def test_per_type(self, make_login, card_item, identity_item, note_item):
        assert make_login("x", username="alice").subtitle == "alice"
        assert card_item.subtitle == "Visa"
        assert identity_item.subtitle == "jane@example.com"
        assert note_item.subtitle == "network: home\npassword: abc"[:30]

    def test_type_labels(self):
        assert [t.label for t in CipherType] == ["LOGIN", "NOTE", "CARD", "ID", "SSH"]


class TestToDict:
    def test_keeps_unmodelled_keys(self, make_login):
        item = make_login("GitHub", passwordHistory=[{"password": "old"}], collectionIds=["c1"])
        data = item.to_dict()
        assert data["passwordHistory"] == [{"password": "old"}]
        assert data["collectionIds"] == ["c1"]
        assert data["login"]["username"] == "user@example.com"

    def test_raw_is_a_copy(self, make_login):
        item = make_login("GitHub")
        item.to_dict()["name"] = "changed"
        assert item.raw["name"] == "GitHub"

    def test_card_round_trip(self, card_item):
        assert Item.from_dict(card_item.to_dict()) == card_item
