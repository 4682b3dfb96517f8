"""
Read-only client for the ticket directory service.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx

from ticket_desk.models import Ticket

logger = logging.getLogger("ticket_desk.directory")

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class DirectoryError(RuntimeError):
    pass


def waiting_tickets(tickets: List[Ticket]) -> List[Ticket]:
    """
    Keep tickets awaiting the customer's reply, newest first.
    The sort is stable, so tickets created at the same instant keep fetch order.
    Tickets with an unreadable created-at sort last.
    """
    waiting = [t for t in tickets if t.is_waiting]
    return sorted(waiting, key=lambda t: t.created or _OLDEST, reverse=True)


class TicketDirectoryClient:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = float(timeout_s)
        self.last_result: List[Ticket] = []
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_s,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_tickets(self) -> List[Ticket]:
        """
        Fetch every ticket from the directory.
        Raises DirectoryError on transport failures or an unsuccessful reply.
        """
        try:
            resp = await self._client.get("/api/tickets")
        except httpx.HTTPError as e:
            raise DirectoryError(f"ticket directory unreachable: {e}") from e

        if resp.status_code >= 400:
            raise DirectoryError(f"HTTP {resp.status_code}: {resp.text[:300]}")

        try:
            data: Any = resp.json()
        except ValueError as e:
            raise DirectoryError("ticket directory returned invalid JSON") from e

        if not isinstance(data, dict) or not data.get("success"):
            raise DirectoryError("ticket directory reported failure")

        raw = data.get("tickets")
        if not isinstance(raw, list):
            raise DirectoryError("ticket directory reply has no ticket list")

        out: List[Ticket] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                out.append(Ticket.from_dict(item))
            except ValueError as e:
                logger.debug("skipping malformed ticket: %s", e)
        return out

    async def list_waiting_tickets(self) -> List[Ticket]:
        """
        Tickets waiting for a customer reply, newest first.
        Never raises: a failed fetch is logged and yields an empty list.
        """
        try:
            tickets = await self.fetch_tickets()
        except DirectoryError as e:
            logger.error("error fetching tickets: %s", e)
            self.last_result = []
            return []

        self.last_result = waiting_tickets(tickets)
        logger.info("fetched %d tickets, %d waiting", len(tickets), len(self.last_result))
        return list(self.last_result)
