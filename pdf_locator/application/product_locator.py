# pdf_locator/application/product_locator.py

import logging
from typing import Optional, Tuple

from pdf_locator.application.search_session import SearchSession
from pdf_locator.domain.interfaces import PageContainerPort
from pdf_locator.domain.models import (
    LocationMode,
    Product,
    ProductLocation,
    SearchQuery,
    SearchStatus,
)
from pdf_locator.domain.rect_projector import RectProjector


logger = logging.getLogger(__name__)


class ProductLocator:
    """
    Decides how to highlight a selected product on the page being viewed.

    - Coordinates recorded upstream for this page → placed directly.
    - Otherwise → fuzzy text search on the current page, with the
      recorded page (if any) reported as a suggestion.

    Selecting the same product on the same page again is a no-op unless
    forced, so re-renders don't restart a search that already settled.
    A text search cleared through the shared session does run again.
    """

    def __init__(self, session: SearchSession, rect_projector: Optional[RectProjector] = None):
        self._session = session
        self._rect_projector = rect_projector or RectProjector()
        self._last_key: Optional[Tuple[str, int]] = None
        self._last_location: Optional[ProductLocation] = None

    @property
    def session(self) -> SearchSession:
        return self._session

    def locate(
        self,
        product: Product,
        page_number: int,
        container: PageContainerPort,
        force: bool = False,
    ) -> ProductLocation:
        key = (product.product_id, page_number)
        if not force and key == self._last_key and not self._cached_location_is_stale():
            return self._last_location

        self._session.clear()
        location = self._locate_by_coordinates(product, page_number, container)

        if location is None:
            coordinates = product.coordinates
            suggested_page = None
            if coordinates is not None and coordinates.page != page_number:
                suggested_page = coordinates.page

            logger.info("Searching page %d for '%s'", page_number, product.name)
            self._session.search(
                SearchQuery(text=product.name, isbn=product.isbn, subject=product.subject),
                container,
            )
            location = ProductLocation(
                mode=LocationMode.TEXT_SEARCH,
                page=page_number,
                suggested_page=suggested_page,
            )

        self._last_key = key
        self._last_location = location
        return location

    def deselect(self) -> None:
        self._session.clear()
        self._last_key = None
        self._last_location = None

    def _cached_location_is_stale(self) -> bool:
        """True when there is nothing cached or its text search was cleared elsewhere."""
        if self._last_location is None:
            return True
        return (
            self._last_location.mode is LocationMode.TEXT_SEARCH
            and self._session.state.status is SearchStatus.IDLE
        )

    def _locate_by_coordinates(
        self,
        product: Product,
        page_number: int,
        container: PageContainerPort,
    ) -> Optional[ProductLocation]:
        coordinates = product.coordinates
        if coordinates is None or coordinates.page != page_number or not coordinates.has_position:
            return None

        try:
            container_rect = container.get_bounding_rect()
        except Exception as error:
            logger.debug("Reading page container rect failed: %s", error)
            container_rect = None

        rect = self._rect_projector.project_coordinates(coordinates, product.name, container_rect)
        if rect is None:
            return None

        logger.info(
            "Placing '%s' from recorded coordinates (%s)",
            product.name, "exact" if coordinates.has_size else "approximate",
        )
        return ProductLocation(
            mode=LocationMode.COORDINATES,
            page=page_number,
            rect=rect,
            is_exact=coordinates.has_size,
        )
