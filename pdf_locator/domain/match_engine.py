# pdf_locator/domain/match_engine.py

import logging
from typing import Dict, List, Optional, Tuple

from .models import (
    Corpus,
    FragmentRange,
    MATCH_TYPE_RANK,
    MatchCandidate,
    MatchType,
    SearchQuery,
)
from .subject_filter import (
    SubjectFilter,
    VALID_MATCH_RATIO,
    contains_forbidden,
    query_words,
    word_overlap_ratio,
)
from .text_normalizer import normalize, normalize_isbn


logger = logging.getLogger(__name__)


# ── Constants ─────────────────────────────────────────────────────────────────

# Approximate windows below this ratio are never returned
WINDOW_ACCEPT_RATIO = 0.90

# Queries shorter than this are scanned every 2 chars, longer ones every 5
SHORT_QUERY_LENGTH = 20
SHORT_QUERY_STEP = 2
LONG_QUERY_STEP = 5

# Window lengths tried at each start, as multiples of the query length
WINDOW_SCALES = (1.0, 1.2, 0.8)


class MatchEngine:
    """
    Locates a product description inside one page's corpus.

    Three tiers, stopping at the first that yields a valid result:

        1. ISBN exact     → first literal occurrence, no subject filtering
        2. Query exact    → first literal occurrence, subject-validated
        3. Sliding window → best-scoring window with ratio ≥ 0.90

    Tiers 1-2 are first-match (first occurrence wins); tier 3 keeps the
    single best window over the whole page (ties: first in scan order).
    Below 0.90 the engine reports not-found rather than guessing.

    Candidate text is always widened to the boundaries of the fragments it
    touches, so a hit inside a "Historia" line cannot pass as a clean
    "cuaderno" match for "Matemática".
    """

    def __init__(self, subject_filter: SubjectFilter, find_all: bool = False):
        """
        Args:
            subject_filter: Supplies the forbidden tokens per subject.
            find_all:       Tiers 1-2 return every non-overlapping
                            occurrence instead of only the first.
        """
        self._subject_filter = subject_filter
        self._find_all = find_all

    def search(self, corpus: Corpus, query: SearchQuery) -> List[MatchCandidate]:
        if corpus.is_empty:
            return []

        if query.isbn:
            candidates = self._match_isbn(corpus, normalize_isbn(query.isbn))
            if candidates:
                logger.debug("ISBN tier matched %d candidate(s)", len(candidates))
                return rank_candidates(candidates)

        normalized_query = normalize(query.text)
        if not normalized_query:
            return []

        forbidden = self._subject_filter.forbidden_tokens(query.subject)
        words = query_words(normalized_query)

        candidates = self._match_exact(corpus, normalized_query, words, forbidden)
        if candidates:
            logger.debug("Exact tier matched %d candidate(s)", len(candidates))
            return rank_candidates(candidates)

        best = self._match_window(corpus, normalized_query, words, forbidden)
        if best is None:
            logger.debug("No window reached %.2f for '%s'", WINDOW_ACCEPT_RATIO, normalized_query)
            return []
        logger.debug("Window tier matched with similarity %.2f", best.similarity)
        return [best]

    # ─── Tier 1: ISBN ─────────────────────────────────────────────────────────

    def _match_isbn(self, corpus: Corpus, isbn: str) -> List[MatchCandidate]:
        if not isbn:
            return []
        candidates = []
        for start in self._occurrences(corpus.text, isbn):
            ranges = corpus.overlapping(start, start + len(isbn))
            candidates.append(_candidate(corpus, ranges, MatchType.EXACT_ISBN, 1.0))
        return candidates

    # ─── Tier 2: exact query ──────────────────────────────────────────────────

    def _match_exact(
        self,
        corpus: Corpus,
        normalized_query: str,
        words: List[str],
        forbidden: List[str],
    ) -> List[MatchCandidate]:
        candidates = []
        for start in self._occurrences(corpus.text, normalized_query):
            ranges = corpus.overlapping(start, start + len(normalized_query))
            candidate_text = _span_text(corpus, ranges)
            if contains_forbidden(candidate_text, forbidden):
                continue
            if word_overlap_ratio(candidate_text, words) < VALID_MATCH_RATIO:
                continue
            candidates.append(_candidate(corpus, ranges, MatchType.EXACT, 1.0))
            if not self._find_all:
                break
        return candidates

    def _occurrences(self, text: str, term: str):
        position = text.find(term)
        while position != -1:
            yield position
            if not self._find_all:
                return
            position = text.find(term, position + len(term))

    # ─── Tier 3: sliding window ───────────────────────────────────────────────

    def _match_window(
        self,
        corpus: Corpus,
        normalized_query: str,
        words: List[str],
        forbidden: List[str],
    ) -> Optional[MatchCandidate]:
        target_length = len(normalized_query)
        step = SHORT_QUERY_STEP if target_length < SHORT_QUERY_LENGTH else LONG_QUERY_STEP
        window_lengths = [int(target_length * scale) for scale in WINDOW_SCALES]
        corpus_length = len(corpus.text)

        # Many windows widen to the same fragment span; score each span once
        scored: Dict[Tuple[int, int], Optional[float]] = {}
        best_ratio = -1.0
        best_ranges: List[FragmentRange] = []

        for start in range(0, corpus_length, step):
            for length in window_lengths:
                if length <= 0:
                    continue
                end = min(start + length, corpus_length)
                ranges = corpus.overlapping(start, end)
                if not ranges:
                    continue

                key = (ranges[0].start, ranges[-1].end)
                if key not in scored:
                    candidate_text = _span_text(corpus, ranges)
                    if contains_forbidden(candidate_text, forbidden):
                        scored[key] = None
                    else:
                        scored[key] = word_overlap_ratio(candidate_text, words)

                ratio = scored[key]
                if ratio is None or ratio < WINDOW_ACCEPT_RATIO:
                    continue
                if ratio > best_ratio:
                    best_ratio = ratio
                    best_ranges = ranges

        if not best_ranges:
            return None
        return _candidate(corpus, best_ranges, MatchType.PARTIAL, best_ratio)


def rank_candidates(candidates: List[MatchCandidate]) -> List[MatchCandidate]:
    return sorted(candidates, key=lambda c: (MATCH_TYPE_RANK[c.match_type], c.start))


def _span_text(corpus: Corpus, ranges: List[FragmentRange]) -> str:
    return corpus.text[ranges[0].start:ranges[-1].end]


def _candidate(
    corpus: Corpus,
    ranges: List[FragmentRange],
    match_type: MatchType,
    similarity: float,
) -> MatchCandidate:
    return MatchCandidate(
        fragments=[r.fragment for r in ranges],
        matched_text=_span_text(corpus, ranges),
        match_type=match_type,
        similarity=similarity,
        start=ranges[0].start,
        end=ranges[-1].end,
    )
