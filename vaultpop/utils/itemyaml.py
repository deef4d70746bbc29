"""
Human-editable YAML for login items.

`item_to_yaml` renders a login with every string value double-quoted and
escaped, so quotes, backslashes, newlines and tabs survive the trip through
the editor. `yaml_to_item` parses the edited text back into a `LoginDraft`,
which can be compared against the original (`drafts_equal`) and turned into
the agent's JSON for create (`to_item_dict`) or edit (`merge_onto`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import yaml  # type: ignore[import-untyped]

from vaultpop.agent.models import FIELD_HIDDEN, FIELD_TEXT, CipherType, CustomField, Item

CREATE_TEMPLATE = """\
# vaultpop - New Login
# Save and close to create. Delete all content to cancel.

name: ""                    # Required - entry name
username: ""
password: ""                # Leave empty for no password
url: ""                     # Primary URL
totp_secret: ""             # TOTP/2FA secret (otpauth:// or base32)

# Optional settings
notes: ""
favorite: false
reprompt: false             # Require master password to view

# Additional URLs (optional)
# additional_urls:
#   - "https://app.example.com"
#   - "https://api.example.com"

# Custom fields (optional)
# custom_fields:
#   - name: "API Key"
#     value: "your-key-here"
#     hidden: true
#   - name: "Account ID"
#     value: "12345"
"""

_SIMPLE_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}
# Characters YAML would treat as line breaks or BOM inside a quoted scalar
_UNICODE_BREAKS = {"\x85", " ", " ", "﻿"}


@dataclass(frozen=True)
class LoginDraft:
    """A login as described by edited YAML. Empty strings mean "cleared"."""

    name: str
    username: str = ""
    password: str = ""
    totp: str = ""
    uris: tuple[str, ...] = ()
    notes: str = ""
    favorite: bool = False
    reprompt: bool = False
    fields: tuple[CustomField, ...] = ()

    def to_item_dict(self) -> dict[str, Any]:
        """JSON for `bw create item`."""
        return {
            "type": int(CipherType.LOGIN),
            "organizationId": None,
            "folderId": None,
            "name": self.name,
            "notes": self.notes,
            "favorite": self.favorite,
            "reprompt": 1 if self.reprompt else 0,
            "login": {
                "username": self.username,
                "password": self.password,
                "totp": self.totp,
                "uris": [{"match": None, "uri": u} for u in self.uris],
            },
            "fields": [{"name": f.name, "value": f.value, "type": f.type} for f in self.fields],
        }

    def merge_onto(self, original: Item) -> dict[str, Any]:
        """JSON for `bw edit item`: the original with the edited fields replaced.

        The agent replaces the whole item, so identifiers, organization and
        folder references, and every key not covered by the YAML surface
        are carried over from the original.
        """
        data = original.to_dict()
        old_uris = list(original.login.uris) if original.login else []
        uris = []
        for idx, uri in enumerate(self.uris):
            match = old_uris[idx].match if idx < len(old_uris) and old_uris[idx].uri == uri else None
            uris.append({"match": match, "uri": uri})

        login = dict(data.get("login") or {})
        login.update(
            {
                "username": self.username,
                "password": self.password,
                "totp": self.totp,
                "uris": uris,
            }
        )
        data.update(
            {
                "name": self.name,
                "notes": self.notes,
                "favorite": self.favorite,
                "reprompt": 1 if self.reprompt else 0,
                "login": login,
                "fields": [{"name": f.name, "value": f.value, "type": f.type} for f in self.fields],
            }
        )
        return data


def get_create_template() -> str:
    return CREATE_TEMPLATE


def escape_yaml_value(value: str) -> str:
    """Render `value` as a double-quoted YAML scalar."""
    out = []
    for ch in value:
        if ch in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[ch])
        elif ord(ch) < 0x20 or ch == "\x7f":
            out.append(f"\\x{ord(ch):02x}")
        elif ch in _UNICODE_BREAKS:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _block_safe(text: str) -> bool:
    """Whether multi-line notes can be shown as a literal block unchanged."""
    if text != text.strip() or text[:1].isspace():
        return False
    return not any(ch in text for ch in "\r\t\x85  ﻿")


def item_to_yaml(item: Item) -> str:
    """Render a login for editing, with commented hints for unset fields."""
    login = item.login
    lines = [
        f"# vaultpop - Edit Login: {item.name.splitlines()[0] if item.name else ''}",
        "# Save and close to update. Delete all content to cancel.",
        "",
        f"name: {escape_yaml_value(item.name)}",
    ]

    def optional(key: str, value: str | None) -> None:
        if value:
            lines.append(f"{key}: {escape_yaml_value(value)}")
        else:
            lines.append(f'# {key}: ""')

    optional("username", login.username if login else None)
    optional("password", login.password if login else None)
    uris = list(login.uris) if login else []
    optional("url", uris[0].uri if uris else None)
    optional("totp_secret", login.totp if login else None)

    notes = item.notes or ""
    if "\n" in notes and _block_safe(notes):
        lines.append("notes: |-")
        lines.extend(f"  {line}" if line else "" for line in notes.split("\n"))
    else:
        optional("notes", notes)

    lines.append(f"favorite: {'true' if item.favorite else 'false'}")
    lines.append(f"reprompt: {'true' if item.reprompt else 'false'}")

    if len(uris) > 1:
        lines.append("additional_urls:")
        lines.extend(f"  - {escape_yaml_value(u.uri)}" for u in uris[1:])
    else:
        lines.append("# additional_urls:")
        lines.append('#   - "https://app.example.com"')

    if item.fields:
        lines.append("custom_fields:")
        for f in item.fields:
            lines.append(f"  - name: {escape_yaml_value(f.name)}")
            lines.append(f"    value: {escape_yaml_value(f.value)}")
            if f.hidden:
                lines.append("    hidden: true")
    else:
        lines.append("# custom_fields:")
        lines.append('#   - name: "API Key"')
        lines.append('#     value: "your-key-here"')
        lines.append("#     hidden: true")

    return "\n".join(lines) + "\n"


def _text(value: Any) -> str | None:
    """Scalar → string. Unquoted numbers typed by the user count as text."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def yaml_to_item(content: str) -> LoginDraft | None:
    """Parse edited YAML. None for empty, comment-only, invalid or nameless content."""
    stripped = "\n".join(
        line for line in content.split("\n") if not line.strip().startswith("#")
    ).strip()
    if not stripped:
        return None

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError:
        return None
    if not isinstance(parsed, dict):
        return None

    name = _text(parsed.get("name"))
    if not name or not name.strip():
        return None

    uris: list[str] = []
    url = _text(parsed.get("url"))
    if url and url.strip():
        uris.append(url.strip())
    additional = parsed.get("additional_urls")
    if isinstance(additional, list):
        for entry in additional:
            extra = _text(entry)
            if extra and extra.strip():
                uris.append(extra.strip())

    fields: list[CustomField] = []
    custom = parsed.get("custom_fields")
    if isinstance(custom, list):
        for entry in custom:
            if not isinstance(entry, dict):
                continue
            field_name = _text(entry.get("name"))
            if not field_name or not field_name.strip():
                continue
            fields.append(
                CustomField(
                    name=field_name.strip(),
                    value=_text(entry.get("value")) or "",
                    type=FIELD_HIDDEN if entry.get("hidden") is True else FIELD_TEXT,
                )
            )

    notes = _text(parsed.get("notes")) or ""
    return LoginDraft(
        name=name.strip(),
        username=_text(parsed.get("username")) or "",
        password=_text(parsed.get("password")) or "",
        totp=_text(parsed.get("totp_secret")) or "",
        uris=tuple(uris),
        notes=notes.strip(),
        favorite=parsed.get("favorite") is True,
        reprompt=parsed.get("reprompt") is True,
        fields=tuple(fields),
    )


def validate_draft(draft: LoginDraft) -> str | None:
    """Return an error message, or None if the draft can be submitted."""
    if not draft.name.strip():
        return "Name is required"
    return None


def drafts_equal(original: Item, draft: LoginDraft) -> bool:
    """True when saving `draft` would not change anything the YAML can express."""
    login = original.login
    original_fields = tuple(
        CustomField(name=f.name, value=f.value, type=FIELD_HIDDEN if f.hidden else FIELD_TEXT)
        for f in original.fields
    )
    return (
        original.name == draft.name
        and original.favorite == draft.favorite
        and original.reprompt == draft.reprompt
        and (original.notes or "") == draft.notes
        and ((login.username if login else None) or "") == draft.username
        and ((login.password if login else None) or "") == draft.password
        and ((login.totp if login else None) or "") == draft.totp
        and tuple(original.uris) == draft.uris
        and original_fields == draft.fields
    )
