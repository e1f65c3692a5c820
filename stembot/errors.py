"""
stembot.errors — Domain Error Taxonomy
=======================================

Every failure the services raise on purpose derives from
:class:`StemBotError`.  The API layer maps each subclass to an HTTP status;
bulk sync catches the base class per member and records the message.
"""

from __future__ import annotations


class StemBotError(Exception):
    """Base class for expected, reportable failures."""


class NotFoundError(StemBotError):
    """A platform identity or roster row does not exist (or is soft-deleted)."""


class ValidationError(StemBotError):
    """Malformed input: missing field, unknown status, bad value."""


class ConflictError(StemBotError):
    """The requested record already exists."""


class UpstreamError(StemBotError):
    """A Discord or datastore call failed."""


class ConfigError(StemBotError):
    """A mandatory setting is missing or unusable."""
