"""Custom exceptions for the epmaquant package."""


class EPMAQuantError(Exception):
    """Base exception for all epmaquant errors."""

    pass


class InvalidInputError(EPMAQuantError, ValueError):
    """Raised when measurement data or options are malformed."""

    pass


class InvalidStandardError(InvalidInputError):
    """Raised when a standard does not contain the element being measured."""

    pass


class UnknownAtomicDataError(EPMAQuantError, KeyError):
    """Raised when the atomic database has no value for a requested datum."""

    pass
