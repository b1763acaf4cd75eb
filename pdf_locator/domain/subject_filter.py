# pdf_locator/domain/subject_filter.py

from typing import Dict, Iterable, List, Optional

from .text_normalizer import normalize


# ── Constants ─────────────────────────────────────────────────────────────────

# Query words shorter than this carry no signal ("y", "7", "a")
MIN_QUERY_WORD_LENGTH = 2

# Minimum share of query words a candidate must contain to be valid
VALID_MATCH_RATIO = 0.85


def query_words(normalized_query: str) -> List[str]:
    """Significant words of an already-normalized query."""
    return [w for w in normalized_query.split(" ") if len(w) >= MIN_QUERY_WORD_LENGTH]


def word_overlap_ratio(candidate_text: str, words: List[str]) -> float:
    """Fraction of `words` found as substrings of `candidate_text`."""
    if not words:
        return 0.0
    found = sum(1 for word in words if word in candidate_text)
    return found / len(words)


class SubjectFilter:
    """
    Rejects matches that bind a product to another subject's listing.

    The table maps each subject key to its OWN tokens. The forbidden set
    for a requested subject is every other subject's tokens, minus the
    requested subject's own. Subjects are resolved by containment, since
    upstream labels vary: "Lenguaje y Comunicación" resolves to
    "lenguaje". A label may resolve to several keys
    ("Historia, Geografía y Ciencias Sociales").

    Unknown or empty subject -> no forbidden tokens -> no filtering.
    """

    def __init__(self, subject_tokens: Dict[str, Iterable[str]]):
        self._subject_tokens: Dict[str, List[str]] = {}
        for key, tokens in subject_tokens.items():
            normalized_key = normalize(key)
            own = [normalized_key] + [normalize(t) for t in tokens]
            self._subject_tokens[normalized_key] = _unique(t for t in own if t)
        self._forbidden_cache: Dict[str, List[str]] = {}

    @property
    def subjects(self) -> List[str]:
        return list(self._subject_tokens)

    def resolve_subjects(self, subject: Optional[str]) -> List[str]:
        """Table keys whose key or own tokens occur in the subject label."""
        normalized = normalize(subject or "")
        if not normalized:
            return []
        return [
            key
            for key, tokens in self._subject_tokens.items()
            if any(token in normalized for token in tokens)
        ]

    def forbidden_tokens(self, subject: Optional[str] = None) -> List[str]:
        normalized = normalize(subject or "")
        if normalized in self._forbidden_cache:
            return self._forbidden_cache[normalized]

        matched = self.resolve_subjects(normalized)
        if not matched:
            forbidden: List[str] = []
        else:
            own = {token for key in matched for token in self._subject_tokens[key]}
            forbidden = _unique(
                token
                for key, tokens in self._subject_tokens.items()
                if key not in matched
                for token in tokens
                if token not in own
            )

        self._forbidden_cache[normalized] = forbidden
        return forbidden

    def score(
        self,
        candidate_text: str,
        query_text: str,
        subject: Optional[str] = None,
    ) -> Optional[float]:
        """
        Word-overlap ratio of the query against the candidate, or None when
        the candidate carries another subject's vocabulary.
        """
        candidate = normalize(candidate_text)
        forbidden = self.forbidden_tokens(subject)
        if contains_forbidden(candidate, forbidden):
            return None
        return word_overlap_ratio(candidate, query_words(normalize(query_text)))

    def is_valid_match(
        self,
        candidate_text: str,
        query_text: str,
        subject: Optional[str] = None,
    ) -> bool:
        ratio = self.score(candidate_text, query_text, subject)
        return ratio is not None and ratio >= VALID_MATCH_RATIO


def contains_forbidden(candidate_text: str, forbidden: List[str]) -> bool:
    return any(token in candidate_text for token in forbidden)


def _unique(tokens: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for token in tokens:
        if token not in seen:
            seen.add(token)
            ordered.append(token)
    return ordered
