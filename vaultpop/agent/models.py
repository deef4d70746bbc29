"""
Data models for vault items.

All models are plain frozen dataclasses, matching the pattern in
vaultpop.config. The agent's JSON is decoded into one closed variant per
cipher type at the boundary; nothing downstream touches raw dicts except
`Item.to_dict()`, which needs them to round-trip fields vaultpop does not
model (organization, folder, password history, ...).
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from vaultpop.agent.errors import ParseError


class CipherType(IntEnum):
    LOGIN = 1
    SECURE_NOTE = 2
    CARD = 3
    IDENTITY = 4
    SSH_KEY = 5

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]


_TYPE_LABELS = {
    CipherType.LOGIN: "LOGIN",
    CipherType.SECURE_NOTE: "NOTE",
    CipherType.CARD: "CARD",
    CipherType.IDENTITY: "ID",
    CipherType.SSH_KEY: "SSH",
}

# Custom field type 1 is "hidden" in the agent's schema
FIELD_TEXT = 0
FIELD_HIDDEN = 1


@dataclass(frozen=True)
class Uri:
    uri: str
    match: int | None = None


@dataclass(frozen=True)
class LoginData:
    username: str | None = None
    password: str | None = None
    totp: str | None = None
    uris: tuple[Uri, ...] = ()


@dataclass(frozen=True)
class CardData:
    cardholder_name: str | None = None
    brand: str | None = None
    number: str | None = None
    exp_month: str | None = None
    exp_year: str | None = None
    code: str | None = None


@dataclass(frozen=True)
class IdentityData:
    title: str | None = None
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address1: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None

    @property
    def full_name(self) -> str:
        parts = [self.title, self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)


@dataclass(frozen=True)
class SshKeyData:
    private_key: str | None = None
    public_key: str | None = None
    key_fingerprint: str | None = None


@dataclass(frozen=True)
class CustomField:
    name: str
    value: str = ""
    type: int = FIELD_TEXT

    @property
    def hidden(self) -> bool:
        return self.type == FIELD_HIDDEN


# JSON key ↔ attribute name, per payload variant
_CARD_KEYS = {
    "cardholderName": "cardholder_name",
    "brand": "brand",
    "number": "number",
    "expMonth": "exp_month",
    "expYear": "exp_year",
    "code": "code",
}
_IDENTITY_KEYS = {
    "title": "title",
    "firstName": "first_name",
    "middleName": "middle_name",
    "lastName": "last_name",
    "email": "email",
    "phone": "phone",
    "address1": "address1",
    "city": "city",
    "state": "state",
    "postalCode": "postal_code",
    "country": "country",
}
_SSH_KEYS = {
    "privateKey": "private_key",
    "publicKey": "public_key",
    "keyFingerprint": "key_fingerprint",
}


@dataclass(frozen=True)
class Item:
    """One vault entry.

    The payload attribute matching `type` is populated and every other
    payload attribute is None (secure notes carry no payload).
    """

    id: str
    type: CipherType
    name: str = ""
    notes: str | None = None
    favorite: bool = False
    reprompt: bool = False
    revision_date: str | None = None
    organization_id: str | None = None
    folder_id: str | None = None
    login: LoginData | None = None
    card: CardData | None = None
    identity: IdentityData | None = None
    ssh_key: SshKeyData | None = None
    fields: tuple[CustomField, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        expected = _PAYLOAD_ATTR.get(self.type)
        for attr in _PAYLOAD_ATTR.values():
            populated = getattr(self, attr) is not None
            if attr == expected and not populated:
                raise ValueError(f"{self.type.name} item {self.id!r} has no {attr} payload")
            if attr != expected and populated:
                raise ValueError(f"{self.type.name} item {self.id!r} carries a {attr} payload")

    @property
    def uris(self) -> list[str]:
        if self.login is None:
            return []
        return [u.uri for u in self.login.uris if u.uri]

    @property
    def subtitle(self) -> str:
        """Short secondary text shown next to the name in result lists."""
        if self.type is CipherType.LOGIN and self.login:
            return self.login.username or ""
        if self.type is CipherType.CARD and self.card:
            return self.card.brand or ""
        if self.type is CipherType.IDENTITY and self.identity:
            return self.identity.email or ""
        if self.type is CipherType.SECURE_NOTE:
            return (self.notes or "")[:30]
        if self.type is CipherType.SSH_KEY and self.ssh_key:
            return self.ssh_key.key_fingerprint or ""
        return ""

    @classmethod
    def from_dict(cls, data: Any) -> Item:
        """Decode one item from the agent's JSON. Raises ParseError."""
        if not isinstance(data, dict):
            raise ParseError(f"Vault item is not an object: {type(data).__name__}")
        item_id = data.get("id")
        if not isinstance(item_id, str) or not item_id:
            raise ParseError("Vault item has no id")
        try:
            ctype = CipherType(data.get("type"))
        except ValueError:
            raise ParseError(f"Unknown item type {data.get('type')!r} for {item_id}") from None

        payload: dict[str, Any] = {}
        if ctype is CipherType.LOGIN:
            payload["login"] = _decode_login(data.get("login"))
        elif ctype is CipherType.CARD:
            payload["card"] = CardData(**_decode_flat(data.get("card"), _CARD_KEYS))
        elif ctype is CipherType.IDENTITY:
            payload["identity"] = IdentityData(**_decode_flat(data.get("identity"), _IDENTITY_KEYS))
        elif ctype is CipherType.SSH_KEY:
            payload["ssh_key"] = SshKeyData(**_decode_flat(data.get("sshKey"), _SSH_KEYS))

        return cls(
            id=item_id,
            type=ctype,
            name=_str_or_none(data.get("name")) or "",
            notes=_str_or_none(data.get("notes")),
            favorite=data.get("favorite") is True,
            reprompt=data.get("reprompt") == 1,
            revision_date=_str_or_none(data.get("revisionDate")),
            organization_id=_str_or_none(data.get("organizationId")),
            folder_id=_str_or_none(data.get("folderId")),
            fields=_decode_fields(data.get("fields")),
            raw=copy.deepcopy(data),
            **payload,
        )

    def to_dict(self) -> dict[str, Any]:
        """Encode back to the agent's JSON, keeping unmodelled keys from `raw`."""
        data = copy.deepcopy(self.raw)
        data.update(
            {
                "id": self.id,
                "type": int(self.type),
                "name": self.name,
                "notes": self.notes,
                "favorite": self.favorite,
                "reprompt": 1 if self.reprompt else 0,
                "fields": [{"name": f.name, "value": f.value, "type": f.type} for f in self.fields],
            }
        )
        if self.organization_id is not None:
            data["organizationId"] = self.organization_id
        if self.folder_id is not None:
            data["folderId"] = self.folder_id
        if self.login is not None:
            login = dict(data.get("login") or {})
            login.update(
                {
                    "username": self.login.username,
                    "password": self.login.password,
                    "totp": self.login.totp,
                    "uris": [_encode_uri(u) for u in self.login.uris],
                }
            )
            data["login"] = login
        if self.card is not None:
            data["card"] = _encode_flat(self.card, _CARD_KEYS)
        if self.identity is not None:
            data["identity"] = _encode_flat(self.identity, _IDENTITY_KEYS)
        if self.ssh_key is not None:
            data["sshKey"] = _encode_flat(self.ssh_key, _SSH_KEYS)
        if self.type is CipherType.SECURE_NOTE:
            data.setdefault("secureNote", {"type": 0})
        return data


_PAYLOAD_ATTR = {
    CipherType.LOGIN: "login",
    CipherType.CARD: "card",
    CipherType.IDENTITY: "identity",
    CipherType.SSH_KEY: "ssh_key",
}


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _decode_flat(raw: Any, keys: dict[str, str]) -> dict[str, str | None]:
    raw = raw if isinstance(raw, dict) else {}
    return {attr: _str_or_none(raw.get(key)) for key, attr in keys.items()}


def _encode_flat(obj: Any, keys: dict[str, str]) -> dict[str, str | None]:
    return {key: getattr(obj, attr) for key, attr in keys.items()}


def _decode_login(raw: Any) -> LoginData:
    raw = raw if isinstance(raw, dict) else {}
    uris: list[Uri] = []
    for entry in raw.get("uris") or []:
        if isinstance(entry, dict) and isinstance(entry.get("uri"), str):
            match = entry.get("match")
            uris.append(Uri(uri=entry["uri"], match=match if isinstance(match, int) else None))
    return LoginData(
        username=_str_or_none(raw.get("username")),
        password=_str_or_none(raw.get("password")),
        totp=_str_or_none(raw.get("totp")),
        uris=tuple(uris),
    )


def _encode_uri(uri: Uri) -> dict[str, Any]:
    return {"match": uri.match, "uri": uri.uri}


def _decode_fields(raw: Any) -> tuple[CustomField, ...]:
    if not isinstance(raw, list):
        return ()
    fields = []
    for entry in raw:
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            continue
        ftype = entry.get("type")
        fields.append(
            CustomField(
                name=entry["name"],
                value=_str_or_none(entry.get("value")) or "",
                type=ftype if isinstance(ftype, int) and not isinstance(ftype, bool) else FIELD_TEXT,
            )
        )
    return tuple(fields)
