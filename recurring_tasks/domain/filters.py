from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class RecurrenceFilters:
    owner_id: int | None = None
    frequency: str | None = None
    active_on: Optional[date] = None
