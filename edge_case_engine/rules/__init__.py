"""Rule catalog and its bundled default rules."""

from .catalog import DEFAULT_RULES_PATH, RuleCatalog

__all__ = ["DEFAULT_RULES_PATH", "RuleCatalog"]
