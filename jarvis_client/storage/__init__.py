"""Persistent storage for the Jarvis client."""

from .credential_store import CredentialStore

__all__ = ["CredentialStore"]
