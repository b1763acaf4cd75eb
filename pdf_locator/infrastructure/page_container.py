# pdf_locator/infrastructure/page_container.py

from typing import Callable, List, Optional

from pdf_locator.domain.interfaces import PageContainerPort
from pdf_locator.domain.models import LayoutRect, NormalizedRect, TextFragment


class InMemoryPageContainer(PageContainerPort):
    """
    Page container backed by a fixed list of fragments.

    Used for text layers read from a PDF file and for fragments posted to
    the HTTP API. Scroll requests are forwarded to `on_scroll` when given,
    and the last one is kept for callers that render it themselves.
    """

    def __init__(
        self,
        fragments: List[TextFragment],
        bounding_rect: LayoutRect,
        on_scroll: Optional[Callable[[NormalizedRect], None]] = None,
    ):
        self._fragments = list(fragments)
        self._bounding_rect = bounding_rect
        self._on_scroll = on_scroll
        self.last_scrolled_to: Optional[NormalizedRect] = None

    def get_text_fragments(self) -> List[TextFragment]:
        return list(self._fragments)

    def get_bounding_rect(self) -> LayoutRect:
        return self._bounding_rect

    def measure_fragment(self, fragment: TextFragment) -> LayoutRect:
        if fragment.layout_rect is None:
            raise ValueError(f"Fragment {fragment.fragment_id} has no layout rect")
        return fragment.layout_rect

    def scroll_into_view(self, rect: NormalizedRect) -> None:
        self.last_scrolled_to = rect
        if self._on_scroll is not None:
            self._on_scroll(rect)
