"""Helpers that talk to the desktop (clipboard, editor) or compute values (TOTP, passwords)."""
