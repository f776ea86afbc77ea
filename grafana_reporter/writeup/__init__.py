"""Narrative writeup sections sourced from a relational store."""

from __future__ import annotations

from .client import SqlWriteupClient, WriteupClient
from .models import Writeup, WriteupSection
from .sanitize import escape_latex
from .storage import WriteupSectionRecord, init_writeup_storage

__all__ = [
    "SqlWriteupClient",
    "Writeup",
    "WriteupClient",
    "WriteupSection",
    "WriteupSectionRecord",
    "escape_latex",
    "init_writeup_storage",
]
