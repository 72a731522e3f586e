"""Supabase-backed lead repository."""

from __future__ import annotations

from typing import Any

from cejquote.repositories.base import LeadRecord, LeadRepository

LEADS_TABLE = "leads"


class SupabaseLeadRepository(LeadRepository):
    """Writes leads to the `leads` table through a lazily created client."""

    def __init__(self, client_provider: Any, *, table: str = LEADS_TABLE) -> None:
        self.client_provider = client_provider
        self.table = table

    def insert_lead(self, record: LeadRecord) -> str:
        client = self.client_provider.get_client()
        if client is None:
            raise RuntimeError("Supabase client is not configured")
        response = (
            client.table(self.table)
            .insert(
                {
                    "name": record.name,
                    "phone": record.phone,
                    "quote_data": record.quote_data,
                    "visitor_id": record.visitor_id,
                    "utm_source": record.utm_source,
                    "utm_medium": record.utm_medium,
                    "status": record.status,
                    "privacy_accepted": record.privacy_accepted,
                    "privacy_accepted_at": record.privacy_accepted_at.isoformat()
                    if record.privacy_accepted_at
                    else None,
                }
            )
            .execute()
        )
        rows = response.data or []
        if not rows:
            raise RuntimeError("Lead insert returned no rows")
        return str(rows[0]["id"])
