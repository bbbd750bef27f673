"""PocketAuth: local user-credential store and session lifecycle."""

__version__ = "0.1.0"
