# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Record store backends for the reusable component scanner."""

from rcs.database.memory import InMemoryStore
from rcs.database.sqlite import SQLiteStore

__all__ = ["InMemoryStore", "SQLiteStore"]
