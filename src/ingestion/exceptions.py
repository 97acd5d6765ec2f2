"""Errors raised by the transcript segmentation pipeline."""

from __future__ import annotations


class FormatError(ValueError):
    """A timestamp string is not in ``HH:MM:SS.mmm`` form."""


class ParseError(ValueError):
    """Caption content cannot be parsed at all (empty or not a string)."""
