"""Note reference model - read-only snapshot of a user note."""

from dataclasses import dataclass
from typing import Any


def _first(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the first present, non-None value among keys."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


@dataclass(frozen=True)
class NoteRef:
    """
    A note as seen by the graph engine.

    Owned by the note storage layer; the engine never mutates it.
    """

    id: str
    title: str = ""
    content: str = ""
    category: str | None = None
    sentiment: str | None = None
    word_count: int = 0
    is_favorite: bool = False

    @property
    def content_length(self) -> int:
        return len(self.content)

    def to_dict(self) -> dict:
        """Convert to the camelCase shape used by export consumers."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "sentiment": self.sentiment,
            "wordCount": self.word_count,
            "isFavorite": self.is_favorite,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NoteRef":
        """Create from a storage record (snake_case or camelCase keys).

        Raises:
            ValueError: if the record has no usable id
        """
        note_id = data.get("id")
        if note_id is None or str(note_id).strip() == "":
            raise ValueError(f"Note record is missing an id: {sorted(data)}")

        return cls(
            id=str(note_id),
            title=_first(data, "title", default="") or "",
            content=_first(data, "content", default="") or "",
            category=_first(data, "category"),
            sentiment=_first(data, "sentiment"),
            word_count=int(_first(data, "word_count", "wordCount", default=0)),
            is_favorite=bool(_first(data, "is_favorite", "isFavorite", default=False)),
        )
