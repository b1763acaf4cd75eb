# pdf_locator/domain/interfaces.py

from abc import ABC, abstractmethod
from typing import Any, Callable, List

from .models import LayoutRect, NormalizedRect, TextFragment


class PageContainerPort(ABC):
    """
    Port for the rendered page owned by the external renderer.
    Fragment rects and the container rect share one coordinate space.
    """

    @abstractmethod
    def get_text_fragments(self) -> List[TextFragment]:
        """
        Current positioned fragments in reading order.
        Empty while the text layer is still mounting.
        """
        ...

    @abstractmethod
    def get_bounding_rect(self) -> LayoutRect: ...

    @abstractmethod
    def measure_fragment(self, fragment: TextFragment) -> LayoutRect:
        """May raise if the fragment's node is gone; callers must cope."""
        ...

    @abstractmethod
    def scroll_into_view(self, rect: NormalizedRect) -> None: ...


class SchedulerPort(ABC):

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        """
        Run `callback` after `delay` seconds on the caller's event loop.
        Returns a handle exposing cancel().
        """
        ...
