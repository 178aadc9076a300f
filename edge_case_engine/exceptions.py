"""Errors surfaced to callers. Only configuration problems are raised."""


class EdgeCaseEngineError(Exception):
    """Base class for engine errors."""


class RuleCatalogError(EdgeCaseEngineError):
    """Raised when a rule catalog cannot be loaded or fails validation."""

    def __init__(self, message: str, source: str = None):
        self.source = source
        if source:
            message = f"{message} (source: {source})"
        super().__init__(message)
