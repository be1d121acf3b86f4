"""Infra layer utilities (persistent hash store)."""

from .storage import PasswordStore, StoreTransaction, hash_password

__all__ = ["PasswordStore", "StoreTransaction", "hash_password"]
