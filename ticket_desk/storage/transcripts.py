"""
Local transcript cache keyed by ticket id.

The cache is not a source of truth: unreadable entries are reported as absent.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence
from urllib.parse import quote

from ticket_desk.models import Message

logger = logging.getLogger("ticket_desk.transcripts")


class TranscriptCache(Protocol):
    def load(self, ticket_id: str) -> Optional[List[Message]]:
        ...

    def save(self, ticket_id: str, transcript: Sequence[Message]) -> None:
        ...


def encode_transcript(transcript: Sequence[Message]) -> str:
    return json.dumps([m.to_dict() for m in transcript], ensure_ascii=False)


def decode_transcript(raw: str) -> List[Message]:
    """Raises ValueError (or KeyError/TypeError) when the text is not a transcript."""
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("transcript must be a list")
    return [Message.from_dict(item) for item in data]


class InMemoryTranscriptCache:
    """Keeps encoded transcripts in a dict, so saved lists are never aliased."""

    def __init__(self):
        self._entries: Dict[str, str] = {}

    def load(self, ticket_id: str) -> Optional[List[Message]]:
        raw = self._entries.get(ticket_id)
        if raw is None:
            return None
        try:
            return decode_transcript(raw)
        except (ValueError, KeyError, TypeError):
            return None

    def save(self, ticket_id: str, transcript: Sequence[Message]) -> None:
        self._entries[ticket_id] = encode_transcript(transcript)

    def __contains__(self, ticket_id: object) -> bool:
        return ticket_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class JsonFileTranscriptCache:
    """
    One JSON file per ticket under `data_dir`.
    Each file holds the list of {sender, text, time} objects.
    """

    def __init__(self, data_dir: str = "./data/transcripts"):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _get_path(self, ticket_id: str) -> Path:
        # Percent-encoding keeps distinct ids in distinct files.
        safe_id = quote(ticket_id, safe="")
        return self.data_dir / f"chat_{safe_id}.json"

    def load(self, ticket_id: str) -> Optional[List[Message]]:
        path = self._get_path(ticket_id)
        if not path.exists():
            return None
        try:
            return decode_transcript(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("ignoring unreadable transcript for %s: %s", ticket_id, e)
            return None

    def save(self, ticket_id: str, transcript: Sequence[Message]) -> None:
        path = self._get_path(ticket_id)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(encode_transcript(transcript), encoding="utf-8")
        tmp.replace(path)
