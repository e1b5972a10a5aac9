"""Result of reconciling one source record."""

from __future__ import annotations

from enum import Enum


class Outcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    NOOP = "noop"
    FAILED = "failed"
