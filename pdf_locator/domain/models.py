# pdf_locator/domain/models.py

from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .text_normalizer import normalize


@dataclass(frozen=True)
class LayoutRect:
    """
    Rectangle in the renderer's coordinate space (pixels, points, ...).
    Fragments and their page container must share the same space.
    """
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass
class TextFragment:
    """
    A positioned run of text exposed by the rendering layer.
    Read-only for the duration of a search.
    """
    fragment_id: str
    raw_text: str
    layout_rect: Optional[LayoutRect] = None
    page_index: int = 0
    is_content: bool = True

    @property
    def normalized_text(self) -> str:
        return normalize(self.raw_text)


@dataclass(frozen=True)
class FragmentRange:
    """Half-open [start, end) span of one fragment inside a corpus string."""
    fragment: TextFragment
    start: int
    end: int


@dataclass
class Corpus:
    page_index: int
    text: str
    ranges: List[FragmentRange] = field(default_factory=list)
    _starts: List[int] = field(default_factory=list, init=False, repr=False, compare=False)
    _ends: List[int] = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._starts = [r.start for r in self.ranges]
        self._ends = [r.end for r in self.ranges]

    @property
    def is_empty(self) -> bool:
        return not self.ranges

    def overlapping(self, start: int, end: int) -> List[FragmentRange]:
        """Fragment ranges intersecting the window [start, end)."""
        if start >= end:
            return []
        low = bisect_right(self._ends, start)
        high = bisect_left(self._starts, end)
        return self.ranges[low:high]


class MatchType(str, Enum):
    EXACT_ISBN = "exact-isbn"
    EXACT = "exact"
    PARTIAL = "partial"
    WORD = "word"


MATCH_TYPE_RANK = {
    MatchType.EXACT_ISBN: 0,
    MatchType.EXACT: 1,
    MatchType.PARTIAL: 2,
    MatchType.WORD: 3,
}

# Approximate windows at or above this ratio are styled like exact hits
EXACT_QUALITY_RATIO = 0.95


@dataclass(frozen=True)
class SearchQuery:
    text: str
    isbn: Optional[str] = None
    subject: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        has_text = bool(self.text and self.text.strip())
        has_isbn = bool(self.isbn and self.isbn.strip())
        return not (has_text or has_isbn)


@dataclass
class MatchCandidate:
    """
    A located hit inside a corpus, traced back to its owning fragments.
    `start`/`end` are corpus offsets of `matched_text`.
    """
    fragments: List[TextFragment]
    matched_text: str
    match_type: MatchType
    similarity: float
    start: int = 0
    end: int = 0

    @property
    def display_quality(self) -> str:
        if self.match_type in (MatchType.EXACT_ISBN, MatchType.EXACT):
            return "exact"
        return "exact" if self.similarity >= EXACT_QUALITY_RATIO else "partial"

    def __repr__(self) -> str:
        preview = self.matched_text[:60]
        return (
            f"MatchCandidate(type={self.match_type.value}, "
            f"similarity={self.similarity:.2f}, "
            f"fragments={len(self.fragments)}, text='{preview}')"
        )


@dataclass(frozen=True)
class NormalizedRect:
    """Highlight region in percentages (0-100) of the page container."""
    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class LocatedMatch:
    candidate: MatchCandidate
    rect: NormalizedRect


class SearchStatus(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    FOUND = "found"
    NOT_FOUND = "not-found"


@dataclass(frozen=True)
class SearchState:
    """
    Immutable snapshot published by a SearchSession.
    `current_index` is a valid index into `matches`, or 0 when empty.
    """
    query: Optional[SearchQuery] = None
    matches: Tuple[LocatedMatch, ...] = ()
    current_index: int = 0
    status: SearchStatus = SearchStatus.IDLE

    @property
    def total_matches(self) -> int:
        return len(self.matches)

    @property
    def is_searching(self) -> bool:
        return self.status is SearchStatus.SEARCHING

    @property
    def current_match(self) -> Optional[LocatedMatch]:
        if not self.matches:
            return None
        return self.matches[self.current_index]


@dataclass(frozen=True)
class ProductCoordinates:
    """
    Location recorded by the upstream extractor: 1-based page number and a
    centre point plus optional size, all in page percentages.
    """
    page: int
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None

    @property
    def has_position(self) -> bool:
        return self.x is not None and self.y is not None

    @property
    def has_size(self) -> bool:
        return self.width is not None and self.height is not None


@dataclass(frozen=True)
class Product:
    product_id: str
    name: str
    isbn: Optional[str] = None
    subject: Optional[str] = None
    coordinates: Optional[ProductCoordinates] = None


class LocationMode(str, Enum):
    COORDINATES = "coordinates"
    TEXT_SEARCH = "text-search"


@dataclass(frozen=True)
class ProductLocation:
    mode: LocationMode
    page: int
    rect: Optional[NormalizedRect] = None
    is_exact: bool = False
    suggested_page: Optional[int] = None
