# pdf_locator/domain/text_normalizer.py

import re
import unicodedata


# Combining Diacritical Marks block, left behind by NFD decomposition
_DIACRITICS = re.compile(r"[\u0300-\u036f]")
_PUNCTUATION = re.compile(r"[.,;:!?¿¡\"'()\[\]{}<>/\\@#$%^&*_+=|~`°ºª\-]")
_WHITESPACE = re.compile(r"\s+")
_ISBN_SEPARATORS = re.compile(r"[-\s]")


def normalize(text: str) -> str:
    """
    Canonical form shared by queries, ISBNs and page text:
    lowercase, no accents, no punctuation, single-spaced, trimmed.

    "Matemática 7º Básico" -> "matematica 7 basico"
    """
    if not text:
        return ""
    lowered = text.lower()
    decomposed = unicodedata.normalize("NFD", lowered)
    without_accents = _DIACRITICS.sub("", decomposed)
    without_punctuation = _PUNCTUATION.sub("", without_accents)
    return _WHITESPACE.sub(" ", without_punctuation).strip()


def normalize_isbn(isbn: str) -> str:
    """Strip hyphens/spaces, then normalize: "978-1234 567890" -> "9781234567890"."""
    if not isbn:
        return ""
    return normalize(_ISBN_SEPARATORS.sub("", isbn))
