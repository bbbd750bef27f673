"""Shared utility functions for the PocketAuth application."""

from pocketauth.utils.passwords import dummy_verify, hash_password, verify_password

__all__ = ["dummy_verify", "hash_password", "verify_password"]
