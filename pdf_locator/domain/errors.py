# pdf_locator/domain/errors.py


class LocatorError(Exception):
    """Base class for errors raised at the locator's boundaries."""


class SubjectTableError(LocatorError, ValueError):
    """The subject token table is missing or malformed."""


class DocumentNotFoundError(LocatorError, FileNotFoundError):
    pass


class PageOutOfRangeError(LocatorError, IndexError):
    pass
