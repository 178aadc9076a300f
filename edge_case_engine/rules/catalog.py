"""
Rule Catalog - loadable set of edge-case detection rules

Rules are plain configuration: they can be loaded from YAML, built from
dicts, or added at runtime without touching evaluator code. Declaration order
is preserved and is the order the orchestrator evaluates rules in.

Usage:
    catalog = RuleCatalog.default()
    catalog = RuleCatalog.from_yaml("/etc/fleet/edge_rules.yaml", strict=True)

    catalog.disable("unusual-pattern-detection")
    for rule in catalog.enabled_rules():
        ...
"""

from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

import structlog
import yaml
from pydantic import ValidationError

from edge_case_engine.exceptions import RuleCatalogError
from edge_case_engine.models.edge_case_models import PRODUCIBLE_CODES, DiagnosticCode
from edge_case_engine.models.rule_models import EdgeCaseRule

logger = structlog.get_logger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent / "default_rules.yaml"


class RuleCatalog:
    """
    Ordered collection of EdgeCaseRule keyed by rule_id.

    Attributes:
        strict: When True, severity-mapping codes that no evaluator can emit
                make the catalog invalid instead of only logging a warning.
    """

    def __init__(self, rules: Optional[Iterable[EdgeCaseRule]] = None, strict: bool = False):
        self.strict = strict
        self._rules: Dict[str, EdgeCaseRule] = {}
        for rule in rules or []:
            if rule.rule_id in self._rules:
                raise RuleCatalogError(f"Duplicate rule_id '{rule.rule_id}'")
            self._rules[rule.rule_id] = rule
        self._check_severity_mappings()

    # ─── Construction ───────────────────────────────────────────────────────

    @classmethod
    def from_dicts(
        cls,
        rule_dicts: Iterable[Mapping[str, Any]],
        strict: bool = False,
        source: Optional[str] = None,
    ) -> "RuleCatalog":
        rules = []
        for index, raw in enumerate(rule_dicts):
            try:
                rules.append(EdgeCaseRule.model_validate(raw))
            except ValidationError as e:
                rule_id = raw.get("rule_id", f"#{index}") if isinstance(raw, Mapping) else f"#{index}"
                raise RuleCatalogError(f"Invalid rule {rule_id}: {e}", source=source) from e
        return cls(rules, strict=strict)

    @classmethod
    def from_yaml(cls, path: Union[str, Path], strict: bool = False) -> "RuleCatalog":
        """
        Load a catalog from a YAML document with a top-level 'rules' list.

        Raises:
            RuleCatalogError: unreadable file, malformed YAML or invalid rules
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise RuleCatalogError(f"Could not read rule catalog: {e}", source=str(path)) from e

        if not isinstance(document, dict) or not isinstance(document.get("rules"), list):
            raise RuleCatalogError("Rule catalog must contain a 'rules' list", source=str(path))

        catalog = cls.from_dicts(document["rules"], strict=strict, source=str(path))
        logger.info("Loaded rule catalog", path=str(path), rules=len(catalog))
        return catalog

    @classmethod
    def default(cls, strict: bool = False) -> "RuleCatalog":
        return cls.from_yaml(DEFAULT_RULES_PATH, strict=strict)

    # ─── Validation ─────────────────────────────────────────────────────────

    def find_unproducible_codes(self) -> Dict[str, List[DiagnosticCode]]:
        """
        Severity-mapping codes that no evaluator ever emits, per rule.

        Such an entry can never take effect.
        """
        unproducible: Dict[str, List[DiagnosticCode]] = {}
        for rule in self._rules.values():
            codes = [code for code in rule.severity_mapping if code not in PRODUCIBLE_CODES]
            if codes:
                unproducible[rule.rule_id] = codes
        return unproducible

    def _check_severity_mappings(self) -> None:
        for rule_id, codes in self.find_unproducible_codes().items():
            names = [code.value for code in codes]
            if self.strict:
                raise RuleCatalogError(
                    f"Rule '{rule_id}' maps codes no evaluator produces: {', '.join(names)}"
                )
            logger.warning("Severity mapping references unproducible codes", rule_id=rule_id, codes=names)

    # ─── Management ─────────────────────────────────────────────────────────

    def add_rule(self, rule: EdgeCaseRule) -> None:
        """Add a rule, or replace the rule with the same id in place."""
        if self.strict:
            bad = [code.value for code in rule.severity_mapping if code not in PRODUCIBLE_CODES]
            if bad:
                raise RuleCatalogError(
                    f"Rule '{rule.rule_id}' maps codes no evaluator produces: {', '.join(bad)}"
                )
        self._rules[rule.rule_id] = rule
        logger.info("Added edge case rule", rule_id=rule.rule_id, case_type=rule.case_type.value)

    def remove_rule(self, rule_id: str) -> bool:
        if rule_id in self._rules:
            del self._rules[rule_id]
            logger.info("Removed edge case rule", rule_id=rule_id)
            return True
        return False

    def get_rule(self, rule_id: str) -> Optional[EdgeCaseRule]:
        return self._rules.get(rule_id)

    def enable(self, rule_id: str) -> bool:
        return self._set_enabled(rule_id, True)

    def disable(self, rule_id: str) -> bool:
        return self._set_enabled(rule_id, False)

    def _set_enabled(self, rule_id: str, enabled: bool) -> bool:
        rule = self._rules.get(rule_id)
        if rule is None:
            return False
        self._rules[rule_id] = rule.model_copy(update={"enabled": enabled})
        return True

    def list_rules(self) -> List[str]:
        return list(self._rules.keys())

    def enabled_rules(self) -> List[EdgeCaseRule]:
        return [rule for rule in self._rules.values() if rule.enabled]

    def __iter__(self) -> Iterator[EdgeCaseRule]:
        return iter(list(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules
