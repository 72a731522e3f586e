"""Repository interfaces for lead persistence."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class LeadRecord:
    """Row written for each submitted order."""

    name: str
    phone: str
    folio: str
    quote_data: dict[str, Any] = field(default_factory=dict)
    visitor_id: Optional[str] = None
    utm_source: str = "direct"
    utm_medium: str = "none"
    status: str = "new"
    privacy_accepted: bool = True
    privacy_accepted_at: Optional[datetime] = None


class LeadRepository(Protocol):
    """Persistence operations required for lead submission."""

    def insert_lead(self, record: LeadRecord) -> str:
        """Persist a lead and return its id."""
        ...
