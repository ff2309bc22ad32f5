#!/usr/bin/env python3
"""
Participant identity forms.

A player shows up in battle logs under three spellings: the display name as
typed, the canonical id used as a key by the server, and the HTML-escaped
display name used inside raw HTML log lines.
"""

import re
from dataclasses import dataclass

_NON_ID_CHARS = re.compile(r"[^A-Za-z0-9]")

# Same table the battle server uses when embedding names in HTML
_HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
    ("/", "&#x2f;"),
)


def to_id(name: str) -> str:
    """Canonical id: lowercase, alphanumerics only ("Rust Haters" -> "rusthaters")."""
    return _NON_ID_CHARS.sub("", name).lower()


def escape_name(name: str) -> str:
    """HTML-escaped display form of a name."""
    # & first so already-produced entities are not escaped twice
    for raw, escaped in _HTML_ESCAPES:
        name = name.replace(raw, escaped)
    return name


@dataclass(frozen=True)
class PlayerIdentity:
    """A participant's display name and the forms derived from it."""

    display_name: str

    @property
    def canonical_id(self) -> str:
        return to_id(self.display_name)

    @property
    def escaped(self) -> str:
        return escape_name(self.display_name)

    def forms(self) -> tuple[str, ...]:
        """Distinct non-empty spellings, longest first."""
        unique = {
            form
            for form in (self.display_name, self.canonical_id, self.escaped)
            if form
        }
        return tuple(sorted(unique, key=lambda form: (-len(form), form)))
