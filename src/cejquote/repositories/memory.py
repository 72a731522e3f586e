"""In-memory lead repository for local runs and tests."""

from __future__ import annotations

import threading

from cejquote.repositories.base import LeadRecord, LeadRepository


class InMemoryLeadRepository(LeadRepository):
    """Thread-safe in-memory storage."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        """Reset all in-memory state (used by tests)."""
        with self._lock:
            self._leads: dict[str, LeadRecord] = {}
            self._lead_seq = 1

    def insert_lead(self, record: LeadRecord) -> str:
        with self._lock:
            lead_id = str(self._lead_seq)
            self._lead_seq += 1
            self._leads[lead_id] = record
            return lead_id

    def all(self) -> list[LeadRecord]:
        with self._lock:
            return list(self._leads.values())
