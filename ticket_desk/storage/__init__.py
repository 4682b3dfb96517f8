from .transcripts import (
    InMemoryTranscriptCache,
    JsonFileTranscriptCache,
    TranscriptCache,
    decode_transcript,
    encode_transcript,
)

__all__ = [
    "InMemoryTranscriptCache",
    "JsonFileTranscriptCache",
    "TranscriptCache",
    "decode_transcript",
    "encode_transcript",
]
