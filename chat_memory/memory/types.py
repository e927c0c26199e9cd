"""
Memory type definitions for the memory system.
"""

import time
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4


DEFAULT_SOURCE = "chat"
DEFAULT_SEARCH_LIMIT = 5
DEFAULT_SEARCH_THRESHOLD = 0.7


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a datetime from string, epoch milliseconds or datetime.

    Handles ISO format strings including 'Z' suffix for UTC. Values without
    an offset are taken as UTC, so every parsed datetime is timezone-aware.

    Args:
        value: String, number or datetime to parse

    Returns:
        Parsed datetime or None

    Raises:
        ValueError: If a string is not in ISO format
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        # Handle 'Z' suffix for UTC
        if value.endswith('Z'):
            value = value[:-1] + '+00:00'
        return _as_utc(datetime.fromisoformat(value))
    return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _require_timestamp(value: Any) -> datetime:
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {value!r}")
    return parsed


def _coerce_importance(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Invalid importance: {value!r}")
    return float(value)


def _coerce_tags(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        raise ValueError("Tags must be a sequence of strings, not a string")
    return [str(tag) for tag in value]


def generate_memory_id() -> str:
    """Generate an opaque memory id of the form ``mem_<epoch-ms>_<random>``."""
    return f"mem_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


@dataclass
class MemoryMetadata:
    """
    Mutable metadata attached to a memory entry.

    Attributes:
        timestamp: When the memory was created
        source: Free-form origin tag (e.g. "chat")
        importance: Optional importance score (0-1)
        tags: Optional tags for categorization
    """

    timestamp: datetime = field(default_factory=utc_now)
    source: str = DEFAULT_SOURCE
    importance: Optional[float] = None
    tags: Optional[List[str]] = None

    @classmethod
    def field_names(cls) -> List[str]:
        """Names of the fields that may be merged by a partial update."""
        return [f.name for f in fields(cls)]

    def merge(self, **partial: Any) -> None:
        """
        Merge the given fields into this metadata in place.

        All values are validated before any field changes, so a rejected
        update leaves the metadata untouched.

        Raises:
            ValueError: On an unknown field name or an invalid value
        """
        unknown = set(partial) - set(self.field_names())
        if unknown:
            raise ValueError(f"Unknown metadata fields: {', '.join(sorted(unknown))}")

        converted = {}
        for key, value in partial.items():
            if key == "timestamp":
                converted[key] = _require_timestamp(value)
            elif key == "source":
                if not isinstance(value, str) or not value:
                    raise ValueError(f"Invalid source: {value!r}")
                converted[key] = value
            elif key == "importance":
                converted[key] = _coerce_importance(value)
            else:
                converted[key] = _coerce_tags(value)

        for key, value in converted.items():
            setattr(self, key, value)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
            "importance": self.importance,
            "tags": list(self.tags) if self.tags is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryMetadata":
        """Create from dictionary."""
        tags = data.get("tags")
        return cls(
            timestamp=parse_datetime(data.get("timestamp")) or utc_now(),
            source=data.get("source") or DEFAULT_SOURCE,
            importance=_coerce_importance(data.get("importance")),
            tags=_coerce_tags(tags),
        )


@dataclass
class MemoryEntry:
    """
    A single remembered piece of conversation.

    ``id``, ``content`` and ``embedding`` are fixed once the entry exists;
    only ``metadata`` changes afterwards, through the store's explicit
    metadata update.

    Attributes:
        content: The remembered text
        id: Unique identifier, generated when omitted
        embedding: Optional vector embedding for semantic search
        metadata: Timestamp, source, importance and tags
        session_id: Optional conversation partition key
    """

    content: str
    id: str = field(default_factory=generate_memory_id)
    embedding: Optional[List[float]] = None
    metadata: MemoryMetadata = field(default_factory=MemoryMetadata)
    session_id: Optional[str] = None

    @property
    def timestamp(self) -> datetime:
        """Creation instant of the entry."""
        return self.metadata.timestamp

    @property
    def has_embedding(self) -> bool:
        """Whether a non-empty embedding is attached."""
        return bool(self.embedding)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "content": self.content,
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "metadata": self.metadata.to_dict(),
            "session_id": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryEntry":
        """Create from dictionary."""
        if not data.get("id"):
            raise ValueError("Memory entry is missing an id")

        embedding = data.get("embedding")
        return cls(
            id=data["id"],
            content=data.get("content", ""),
            embedding=[float(x) for x in embedding] if embedding is not None else None,
            metadata=MemoryMetadata.from_dict(data.get("metadata") or {}),
            # Records exported by the browser client use camelCase
            session_id=data.get("session_id", data.get("sessionId")),
        )


@dataclass
class SearchOptions:
    """
    A semantic search request.

    Attributes:
        query: Text to search for
        limit: Maximum number of results
        threshold: Inclusive lower bound on similarity
        session_id: Restrict the search to one session
    """

    query: str
    limit: int = DEFAULT_SEARCH_LIMIT
    threshold: float = DEFAULT_SEARCH_THRESHOLD
    session_id: Optional[str] = None


@dataclass
class MemorySearchResult:
    """
    Result of a memory search.

    Attributes:
        entry: The memory entry
        similarity: Cosine similarity between the query and the entry (-1..1)
    """

    entry: MemoryEntry
    similarity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "entry": self.entry.to_dict(),
            "similarity": self.similarity,
        }


class StoreStatus(str, Enum):
    """Outcome of a store operation."""
    STORED = "stored"
    STORED_WITHOUT_EMBEDDING = "stored_without_embedding"
    NOT_CONFIGURED = "not_configured"


@dataclass
class StoreResult:
    """
    Result of ``MemoryStore.store_memory``.

    Lets callers tell "stored", "stored without a vector" and "not stored"
    apart without the store ever raising.
    """

    status: StoreStatus
    entry: Optional[MemoryEntry] = None
    embedding_status: Optional[str] = None

    @property
    def stored(self) -> bool:
        """Whether an entry was added to the collection."""
        return self.entry is not None


@dataclass
class MemoryStats:
    """Statistics about memory usage."""

    total_entries: int = 0
    entries_with_embedding: int = 0
    entries_by_session: Dict[str, int] = field(default_factory=dict)
    oldest_entry: Optional[datetime] = None
    newest_entry: Optional[datetime] = None
    average_importance: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_entries": self.total_entries,
            "entries_with_embedding": self.entries_with_embedding,
            "entries_by_session": self.entries_by_session,
            "oldest_entry": self.oldest_entry.isoformat() if self.oldest_entry else None,
            "newest_entry": self.newest_entry.isoformat() if self.newest_entry else None,
            "average_importance": self.average_importance,
        }
