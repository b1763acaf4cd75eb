# pdf_locator/infrastructure/pdf_text_layer.py

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import fitz
import pdfplumber

from pdf_locator.domain.errors import DocumentNotFoundError, PageOutOfRangeError
from pdf_locator.domain.models import LayoutRect, TextFragment
from pdf_locator.infrastructure.page_container import InMemoryPageContainer


logger = logging.getLogger(__name__)


class PdfTextLayerLoader:
    """
    Reads the embedded text layer of one PDF page as positioned words.

    Rects are in PDF points with the origin at the page's top-left corner,
    the same space as the returned container rect (the page box), so the
    projected percentages line up with any rendering of the page.

    pdfplumber is tried first; PyMuPDF is the fallback when it yields no
    words (some producers' text is only decoded by MuPDF).
    """

    def __init__(self, file_path: Path):
        self._file_path = Path(file_path)
        if not self._file_path.exists():
            raise DocumentNotFoundError(f"PDF not found: {self._file_path}")

    def page_count(self) -> int:
        with fitz.open(str(self._file_path)) as pdf:
            return pdf.page_count

    def load_page(self, page_number: int) -> InMemoryPageContainer:
        """Text layer of a 1-based page, wrapped as a page container."""
        extracted = self._extract_words_pdfplumber(page_number)
        if extracted is None or not extracted[0]:
            extracted = self._extract_words_pymupdf(page_number)

        fragments, page_rect = extracted
        logger.info(
            "Read %d text fragments from %s page %d",
            len(fragments), self._file_path.name, page_number,
        )
        return InMemoryPageContainer(fragments, page_rect)

    # ─── Private: extractors ──────────────────────────────────────────────────

    def _extract_words_pdfplumber(
        self, page_number: int
    ) -> Optional[Tuple[List[TextFragment], LayoutRect]]:
        try:
            with pdfplumber.open(str(self._file_path)) as pdf:
                self._check_page(page_number, len(pdf.pages))
                page = pdf.pages[page_number - 1]
                words = page.extract_words(x_tolerance=2, y_tolerance=2)
                page_rect = LayoutRect(0.0, 0.0, float(page.width), float(page.height))
                # pdfplumber offsets cropped pages by their bbox origin
                x_origin, y_origin = float(page.bbox[0]), float(page.bbox[1])
        except PageOutOfRangeError:
            raise
        except Exception as error:
            logger.warning("pdfplumber error on %s: %s", self._file_path.name, error)
            return None

        fragments = [
            TextFragment(
                fragment_id=f"p{page_number}-w{index}",
                raw_text=word["text"],
                layout_rect=LayoutRect(
                    left=float(word["x0"]) - x_origin,
                    top=float(word["top"]) - y_origin,
                    width=float(word["x1"]) - float(word["x0"]),
                    height=float(word["bottom"]) - float(word["top"]),
                ),
                page_index=page_number - 1,
            )
            for index, word in enumerate(words)
        ]
        return fragments, page_rect

    def _extract_words_pymupdf(
        self, page_number: int
    ) -> Tuple[List[TextFragment], LayoutRect]:
        with fitz.open(str(self._file_path)) as pdf:
            self._check_page(page_number, pdf.page_count)
            page = pdf.load_page(page_number - 1)
            words = page.get_text("words", sort=True)
            page_rect = LayoutRect(0.0, 0.0, float(page.rect.width), float(page.rect.height))

        fragments = [
            TextFragment(
                fragment_id=f"p{page_number}-w{index}",
                raw_text=text,
                layout_rect=LayoutRect(
                    left=float(x0),
                    top=float(y0),
                    width=float(x1) - float(x0),
                    height=float(y1) - float(y0),
                ),
                page_index=page_number - 1,
            )
            for index, (x0, y0, x1, y1, text, *_rest) in enumerate(words)
        ]
        return fragments, page_rect

    def _check_page(self, page_number: int, total: int) -> None:
        if page_number < 1 or page_number > total:
            raise PageOutOfRangeError(
                f"Page {page_number} out of range for {self._file_path.name} ({total} pages)"
            )
