"""Error types raised by map_ratio.

Everything derives from MapRatioError so callers (and the CLI) can catch
the whole family in one place. Both concrete errors are also ValueErrors:
they describe bad input, never a transient failure.
"""


class MapRatioError(Exception):
    """Base class for all map_ratio errors."""


class MalformedInputError(MapRatioError, ValueError):
    """Bitmap dimensions do not agree with the pixel buffer."""


class InvalidPolicyError(MapRatioError, ValueError):
    """A classification policy is inconsistent or out of range."""
