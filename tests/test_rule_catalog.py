"""
Tests for RuleCatalog loading and management
"""

import pytest

from edge_case_engine.exceptions import EdgeCaseEngineError, RuleCatalogError
from edge_case_engine.models import CaseType, DiagnosticCode, EdgeCaseRule, Severity
from edge_case_engine.rules import DEFAULT_RULES_PATH, RuleCatalog

DEFAULT_RULE_IDS = [
    "maintenance-trip-detection",
    "emergency-trip-detection",
    "data-anomaly-detection",
    "breakdown-trip-detection",
    "unusual-pattern-detection",
]


def rule_dict(rule_id="custom-rule", **kwargs):
    data = {
        "rule_id": rule_id,
        "rule_name": "Custom",
        "case_type": "data_anomaly",
        "conditions": {"distance_anomaly": {"min_threshold": 2}},
        "severity_mapping": {"impossible_distance": "critical"},
    }
    data.update(kwargs)
    return data


class TestDefaultCatalog:
    """Test the bundled rules"""

    def test_five_rules_in_order(self):
        catalog = RuleCatalog.default()

        assert len(catalog) == 5
        assert catalog.list_rules() == DEFAULT_RULE_IDS

    def test_default_path_exists(self):
        assert DEFAULT_RULES_PATH.exists()

    def test_mapping_order_preserved(self):
        rule = RuleCatalog.default().get_rule("breakdown-trip-detection")

        assert list(rule.severity_mapping) == [
            DiagnosticCode.ACCIDENT_RELATED,
            DiagnosticCode.MAJOR_BREAKDOWN,
            DiagnosticCode.MINOR_BREAKDOWN,
        ]
        assert rule.severity_mapping[DiagnosticCode.ACCIDENT_RELATED] == Severity.CRITICAL

    def test_thresholds(self):
        catalog = RuleCatalog.default()
        data_rule = catalog.get_rule("data-anomaly-detection")
        breakdown = catalog.get_rule("breakdown-trip-detection")

        assert data_rule.conditions.distance_anomaly.min_threshold == 1
        assert data_rule.conditions.distance_anomaly.max_threshold == 2000
        assert breakdown.conditions.time_anomaly.min_duration_hours == 0.5
        assert breakdown.auto_actions == [
            "flag_as_breakdown",
            "notify_maintenance_team",
            "create_maintenance_alert",
        ]

    def test_unproducible_codes_reported(self):
        """Reserved codes in mappings can never take effect"""
        unproducible = RuleCatalog.default().find_unproducible_codes()

        assert unproducible["maintenance-trip-detection"] == [DiagnosticCode.EMERGENCY_MAINTENANCE]
        assert unproducible["emergency-trip-detection"] == [DiagnosticCode.BREAKDOWN_EMERGENCY]
        assert "data-anomaly-detection" not in unproducible
        assert "breakdown-trip-detection" not in unproducible

    def test_strict_mode_rejects_default(self):
        with pytest.raises(RuleCatalogError):
            RuleCatalog.default(strict=True)


class TestLoading:
    """Test YAML and dict loading"""

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(
            "rules:\n"
            "  - rule_id: tiny-trips\n"
            "    rule_name: Tiny Trips\n"
            "    case_type: data_anomaly\n"
            "    conditions:\n"
            "      distance_anomaly:\n"
            "        min_threshold: 2\n"
            "    severity_mapping:\n"
            "      impossible_distance: critical\n"
        )

        catalog = RuleCatalog.from_yaml(path, strict=True)

        assert catalog.list_rules() == ["tiny-trips"]
        assert catalog.get_rule("tiny-trips").case_type == CaseType.DATA_ANOMALY

    def test_missing_file(self, tmp_path):
        with pytest.raises(RuleCatalogError) as exc_info:
            RuleCatalog.from_yaml(tmp_path / "missing.yaml")
        assert exc_info.value.source.endswith("missing.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("rules: [\n")

        with pytest.raises(RuleCatalogError):
            RuleCatalog.from_yaml(path)

    def test_rules_list_required(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("version: 1\n")

        with pytest.raises(RuleCatalogError):
            RuleCatalog.from_yaml(path)

    def test_unknown_mapping_code_rejected(self):
        with pytest.raises(RuleCatalogError):
            RuleCatalog.from_dicts([rule_dict(severity_mapping={"made_up_code": "high"})])

    def test_unknown_condition_field_rejected(self):
        with pytest.raises(RuleCatalogError):
            RuleCatalog.from_dicts([rule_dict(conditions={"distance_anomaly": {"minimum": 2}})])

    def test_duplicate_rule_ids(self):
        with pytest.raises(RuleCatalogError):
            RuleCatalog.from_dicts([rule_dict("dup"), rule_dict("dup")])

    def test_error_hierarchy(self):
        assert issubclass(RuleCatalogError, EdgeCaseEngineError)


class TestManagement:
    """Test runtime rule management"""

    def test_add_rule_appends(self):
        catalog = RuleCatalog.default()
        catalog.add_rule(EdgeCaseRule.model_validate(rule_dict()))

        assert catalog.list_rules()[-1] == "custom-rule"
        assert "custom-rule" in catalog

    def test_add_rule_replaces_in_place(self):
        catalog = RuleCatalog.default()
        replacement = EdgeCaseRule.model_validate(rule_dict("data-anomaly-detection"))

        catalog.add_rule(replacement)

        assert catalog.list_rules() == DEFAULT_RULE_IDS
        assert catalog.get_rule("data-anomaly-detection") is replacement

    def test_strict_add_rejects_reserved_codes(self):
        catalog = RuleCatalog([], strict=True)
        rule = EdgeCaseRule.model_validate(rule_dict(severity_mapping={"route_anomaly": "low"}))

        with pytest.raises(RuleCatalogError):
            catalog.add_rule(rule)
        assert len(catalog) == 0

    def test_disable_and_enable(self):
        catalog = RuleCatalog.default()

        assert catalog.disable("unusual-pattern-detection")
        assert "unusual-pattern-detection" not in [r.rule_id for r in catalog.enabled_rules()]
        assert catalog.list_rules() == DEFAULT_RULE_IDS

        assert catalog.enable("unusual-pattern-detection")
        assert len(catalog.enabled_rules()) == 5

    def test_disable_unknown_rule(self):
        assert RuleCatalog.default().disable("nope") is False

    def test_remove_rule(self):
        catalog = RuleCatalog.default()

        assert catalog.remove_rule("emergency-trip-detection")
        assert not catalog.remove_rule("emergency-trip-detection")
        assert len(catalog) == 4

    def test_iteration_order(self):
        assert [rule.rule_id for rule in RuleCatalog.default()] == DEFAULT_RULE_IDS
