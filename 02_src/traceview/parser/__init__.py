"""Event log parsing."""

from .event_stream import DECODERS, KIND_TABLE, EventStreamParser, ParseStats

__all__ = ["DECODERS", "KIND_TABLE", "EventStreamParser", "ParseStats"]
