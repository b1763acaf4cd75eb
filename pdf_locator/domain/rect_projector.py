# pdf_locator/domain/rect_projector.py

import logging
from typing import Callable, List, Optional

import numpy as np

from .models import LayoutRect, NormalizedRect, ProductCoordinates, TextFragment


logger = logging.getLogger(__name__)


# Highlights never shrink below this share of the page, to stay visible at low zoom
MIN_RECT_SIZE_PERCENT = 2.0

# Used when the extractor recorded a centre point but no size
APPROX_HIGHLIGHT_HEIGHT_PX = 30
APPROX_WIDTH_PER_CHAR_PERCENT = 0.75
APPROX_WIDTH_PADDING_PERCENT = 5.0
APPROX_WIDTH_MAX_PERCENT = 45.0


def _layout_rect_of(fragment: TextFragment) -> Optional[LayoutRect]:
    return fragment.layout_rect


class RectProjector:
    """
    Expresses matched regions as percentages of the page container.

    Percentages, not pixels, are the invariant: the page element scales
    uniformly, so a projected rect stays valid under any zoom or scroll.
    """

    def __init__(
        self,
        min_size_percent: float = MIN_RECT_SIZE_PERCENT,
        approx_height_px: float = APPROX_HIGHLIGHT_HEIGHT_PX,
    ):
        self._min_size = min_size_percent
        self._approx_height_px = approx_height_px

    def project(
        self,
        fragments: List[TextFragment],
        container_rect: LayoutRect,
        measure: Optional[Callable[[TextFragment], Optional[LayoutRect]]] = None,
    ) -> Optional[NormalizedRect]:
        """
        Union of the fragments' layout rects, relative to the container.

        Fragments whose geometry cannot be read are treated as absent.
        Returns None when nothing measurable remains or the container has
        no area.
        """
        if container_rect.width <= 0 or container_rect.height <= 0:
            return None

        measure = measure or _layout_rect_of
        boxes = []
        for fragment in fragments:
            try:
                rect = measure(fragment)
            except Exception as error:
                logger.debug("Skipping fragment %s: %s", fragment.fragment_id, error)
                continue
            if rect is None:
                continue
            boxes.append((rect.left, rect.top, rect.right, rect.bottom))

        if not boxes:
            return None

        edges = np.array(boxes, dtype=float)
        left, top = edges[:, 0].min(), edges[:, 1].min()
        right, bottom = edges[:, 2].max(), edges[:, 3].max()

        return NormalizedRect(
            left=float((left - container_rect.left) / container_rect.width * 100),
            top=float((top - container_rect.top) / container_rect.height * 100),
            width=max(float((right - left) / container_rect.width * 100), self._min_size),
            height=max(float((bottom - top) / container_rect.height * 100), self._min_size),
        )

    def project_coordinates(
        self,
        coordinates: ProductCoordinates,
        label: str,
        container_rect: Optional[LayoutRect] = None,
    ) -> Optional[NormalizedRect]:
        """
        Highlight for a product whose page position was recorded upstream.

        Coordinates are a centre point in page percentages. A missing width
        is estimated from the label length; a missing height is a fixed
        pixel height converted against the container.
        """
        if not coordinates.has_position:
            return None

        if coordinates.width is not None:
            width = coordinates.width
        else:
            width = min(
                len(label or "") * APPROX_WIDTH_PER_CHAR_PERCENT + APPROX_WIDTH_PADDING_PERCENT,
                APPROX_WIDTH_MAX_PERCENT,
            )

        if coordinates.height is not None:
            height = coordinates.height
        elif container_rect is not None and container_rect.height > 0:
            height = self._approx_height_px / container_rect.height * 100
        else:
            height = self._min_size

        width = max(width, self._min_size)
        height = max(height, self._min_size)

        return NormalizedRect(
            left=coordinates.x - width / 2,
            top=coordinates.y - height / 2,
            width=width,
            height=height,
        )
