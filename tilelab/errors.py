"""Exception types raised across the rendering pipeline."""


class TileLabError(Exception):
    """Base class for all tilelab errors."""


class LoadError(TileLabError):
    """A single source image could not be fetched or decoded."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Failed to load image {source!r}: {reason}")
        self.source = source
        self.reason = reason


class ParseColorError(TileLabError, ValueError):
    """A color string is not in any supported notation."""

    def __init__(self, value: str):
        super().__init__(f"Unable to parse color: {value!r}")
        self.value = value


class EmptyPoolError(TileLabError):
    """No source image loaded successfully; only the background is drawn."""


class EmptyExportError(TileLabError):
    """Export was requested for a buffer without any drawable content."""
