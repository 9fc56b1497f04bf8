# -*- coding: utf-8 -*-
"""Exception types raised by the CAR/CID pipeline.

Every error derives from CarError so callers can catch the whole family,
and also from the closest builtin so code that only knows about
FileNotFoundError / IOError / ValueError keeps working.
"""


class CarError(Exception):
    """Base class for all CAR/CID errors."""


class MissingInputError(CarError, FileNotFoundError):
    """The input could not be found or opened for reading."""


class CarIOError(CarError, IOError):
    """A read or write failed part way through a stream."""


class InvalidDigestError(CarError, ValueError):
    """A digest passed to CID construction is empty or has the wrong length."""


class InvalidEncodingError(CarError, ValueError):
    """Malformed base32 text, varint, CID string or CAR framing."""
