"""
Comic value objects and provider payload normalization.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class Comic:
    """Structured representation of a published comic."""

    id: int
    title: str
    img: str
    alt: str
    transcript: str
    year: str
    month: str
    day: str
    safe_title: str

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the comic to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "img": self.img,
            "alt": self.alt,
            "transcript": self.transcript,
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "safe_title": self.safe_title,
        }

    def matches(self, query: str) -> bool:
        """Case-sensitive substring match on title or transcript."""
        return query in self.title or query in self.transcript


def normalize_comic(payload: Dict[str, Any]) -> Comic:
    """Map a raw provider payload onto ``Comic``.

    ``num`` becomes ``id``; a missing or empty transcript becomes ``""``.
    """
    return Comic(
        id=payload["num"],
        title=payload["title"],
        img=payload["img"],
        alt=payload["alt"],
        transcript=payload.get("transcript") or "",
        year=payload["year"],
        month=payload["month"],
        day=payload["day"],
        safe_title=payload["safe_title"],
    )


@dataclass(frozen=True)
class SearchResult:
    """One page of search matches plus pagination metadata."""

    query: str
    results: List[Comic]
    total: int
    page: int
    limit: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "total_pages", (self.total + self.limit - 1) // self.limit)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "results": [comic.to_dict() for comic in self.results],
            "total": self.total,
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "totalPages": self.total_pages,
            },
        }
