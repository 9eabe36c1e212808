"""Exceptions raised by the visualization facade and its engines."""


class PolyVizError(Exception):
    """Base exception class for errors that should be surfaced to the caller."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self):
        return self.message


class InvalidTypeError(PolyVizError, ValueError):
    """Raised for an unrecognized visualization type."""


class ContainerNotFoundError(PolyVizError):
    """Raised when a selector does not resolve to exactly one mount point."""


class DataShapeError(PolyVizError, ValueError):
    """Raised when input data does not match the shape a visualization needs."""


class UnknownHandleError(PolyVizError, KeyError):
    """Raised for operations on a handle that is not (or no longer) registered."""


class UnknownThemeError(PolyVizError, KeyError):
    """Raised when a named theme is not registered."""


class BackendUnavailableError(PolyVizError):
    """Raised when an engine was constructed without its rendering backend."""


class RenderError(PolyVizError):
    """Wraps an error raised by a rendering backend while drawing."""

    def __init__(self, operation: str, visualization_id: str, cause: Exception):
        self.operation = operation
        self.visualization_id = visualization_id
        self.cause = cause
        super().__init__(
            f"{operation} failed for visualization '{visualization_id}': {cause}"
        )
