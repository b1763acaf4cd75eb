# pdf_locator/domain/corpus_builder.py

from typing import List, Optional

from .models import Corpus, FragmentRange, TextFragment
from .text_normalizer import normalize


class CorpusBuilder:
    """
    Flattens one page's fragments into a single normalized search string.

    Fragments are taken in the order given (reading order); nothing is
    re-sorted. Retained fragments are joined by one space, and each gets
    a half-open [start, end) range so a substring hit can be traced back
    to the fragment(s) that own it. Separator spaces belong to no fragment.
    """

    def build(
        self,
        fragments: List[TextFragment],
        page_index: Optional[int] = None,
    ) -> Corpus:
        parts: List[str] = []
        ranges: List[FragmentRange] = []
        offset = 0

        for fragment in fragments:
            if not fragment.is_content:
                continue
            if not fragment.raw_text or not fragment.raw_text.strip():
                continue

            text = normalize(fragment.raw_text)
            if not text:
                # Punctuation-only span, nothing left to search
                continue

            if parts:
                offset += 1
            ranges.append(FragmentRange(fragment, offset, offset + len(text)))
            parts.append(text)
            offset += len(text)

        if page_index is None:
            page_index = ranges[0].fragment.page_index if ranges else 0

        return Corpus(page_index=page_index, text=" ".join(parts), ranges=ranges)
