"""Repository layer for external lookups."""

from .baseline_repository import BaselineCache, InMemoryBaselineRepository, MySQLBaselineRepository

__all__ = [
    "BaselineCache",
    "InMemoryBaselineRepository",
    "MySQLBaselineRepository",
]
