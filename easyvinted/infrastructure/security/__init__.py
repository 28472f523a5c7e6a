"""Credential protection."""

from .password_cipher import PasswordCipher

__all__ = ["PasswordCipher"]
