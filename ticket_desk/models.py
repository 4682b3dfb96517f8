"""
Data models for tickets and chat transcripts.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


WAITING_FOR_RESPONSE = "waiting for response"

CONNECTED_NOTICE = "You are now connected to the ticket chat."
WAITING_NOTICE = "Waiting for customer to connect..."


class SenderRole:
    SYSTEM = "system"
    USER = "user"
    SUPPORT = "support"

    ALL = (SYSTEM, USER, SUPPORT)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string into an aware datetime.
    Naive values are taken as UTC; unparseable values give None.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def display_time(value: Any) -> str:
    """Render a wire timestamp as a local wall-clock time; falls back to the raw value."""
    dt = parse_timestamp(value)
    if dt is None:
        return str(value or "")
    return dt.astimezone().strftime("%H:%M:%S")


@dataclass(frozen=True)
class Ticket:
    """A support ticket as served by the directory. Read-only here."""
    ticket_id: str
    issue: str
    status: str
    user_message: str = ""
    created_at: str = ""
    updated_at: str = ""
    user_name: str = ""
    mobile_number: str = ""

    @property
    def created(self) -> Optional[datetime]:
        return parse_timestamp(self.created_at)

    @property
    def is_waiting(self) -> bool:
        return self.status == WAITING_FOR_RESPONSE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ticket":
        ticket_id = data.get("ticketId")
        if ticket_id is None or str(ticket_id) == "":
            raise ValueError("ticket without ticketId")
        return cls(
            ticket_id=str(ticket_id),
            issue=str(data.get("issue", "") or ""),
            status=str(data.get("status", "") or ""),
            user_message=str(data.get("userMessage", "") or ""),
            created_at=str(data.get("createdAt", "") or ""),
            updated_at=str(data.get("updatedAt", "") or ""),
            user_name=str(data.get("userName", "") or ""),
            mobile_number=str(data.get("mobileNumber", "") or ""),
        )


@dataclass(frozen=True)
class Message:
    """One transcript line. `time` is for display only and never used for ordering."""
    sender: str
    text: str
    time: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["time"] is None:
            del data["time"]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        sender = data["sender"]
        if sender not in SenderRole.ALL:
            raise ValueError(f"unknown sender role: {sender!r}")
        text = data["text"]
        if not isinstance(text, str):
            raise ValueError("message text must be a string")
        time = data.get("time")
        return cls(sender=sender, text=text, time=str(time) if time is not None else None)


def seed_transcript() -> List[Message]:
    return [
        Message(sender=SenderRole.SYSTEM, text=CONNECTED_NOTICE),
        Message(sender=SenderRole.SYSTEM, text=WAITING_NOTICE),
    ]
