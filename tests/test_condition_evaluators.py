"""
Tests for the condition evaluators
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from edge_case_engine.models import DiagnosticCode, EdgeCaseRule, TripRecord
from edge_case_engine.repositories import InMemoryBaselineRepository
from edge_case_engine.services import (
    EVALUATOR_REGISTRY,
    ConditionEvaluator,
    DistanceEvaluator,
    FuelEvaluator,
    PatternEvaluator,
    TimeEvaluator,
    build_evaluators,
)
from tests.fixtures.trip_fixtures import TRIP_START, build_trip


def make_rule(conditions, case_type="data_anomaly", **kwargs):
    return EdgeCaseRule.model_validate(
        {
            "rule_id": "test-rule",
            "rule_name": "Test Rule",
            "case_type": case_type,
            "conditions": conditions,
            **kwargs,
        }
    )


def trip(**overrides):
    return TripRecord.model_validate(build_trip(**overrides))


class TestRegistry:
    def test_builtin_evaluators_registered(self):
        for name in ("distance_anomaly", "time_anomaly", "fuel_anomaly", "pattern_anomaly"):
            assert name in EVALUATOR_REGISTRY

    def test_build_evaluators_passes_options(self):
        provider = InMemoryBaselineRepository({"VH-001": 10.0})
        evaluators = build_evaluators(baseline_provider=provider, maintenance_short_trip_km=30)

        fuel = next(e for e in evaluators if isinstance(e, FuelEvaluator))
        pattern = next(e for e in evaluators if isinstance(e, PatternEvaluator))
        assert fuel.baseline_provider is provider
        assert pattern.maintenance_short_trip_km == 30

    def test_applies_only_to_declared_blocks(self):
        rule = make_rule({"distance_anomaly": {"min_threshold": 1}})

        assert DistanceEvaluator().applies_to(rule)
        assert not TimeEvaluator().applies_to(rule)
        assert not FuelEvaluator().applies_to(rule)
        assert not PatternEvaluator().applies_to(rule)

    def test_base_evaluate_not_implemented(self):
        with pytest.raises(NotImplementedError):
            ConditionEvaluator().evaluate(trip(), make_rule({}))


class TestDistanceEvaluator:
    """Test distance thresholds"""

    def test_short_trip(self):
        rule = make_rule({"distance_anomaly": {"min_threshold": 10}})
        hits = DistanceEvaluator().evaluate(trip(end_km=10005.0), rule)

        assert len(hits) == 1
        assert hits[0].pattern == "Very short trip: 5km"
        assert hits[0].codes == (DiagnosticCode.SHORT_DISTANCE,)
        assert hits[0].confidence_delta == 30

    def test_impossible_short_distance(self):
        """Under 1km escalates to impossible distance"""
        rule = make_rule({"distance_anomaly": {"min_threshold": 1}})
        hits = DistanceEvaluator().evaluate(trip(end_km=10000.5), rule)

        assert "impossible distance" in hits[0].pattern
        assert DiagnosticCode.IMPOSSIBLE_DISTANCE in hits[0].codes
        assert hits[0].confidence_delta >= 30

    def test_long_trip(self):
        rule = make_rule({"distance_anomaly": {"max_threshold": 500}})
        hits = DistanceEvaluator().evaluate(trip(end_km=10800.0), rule)

        assert hits[0].pattern == "Unusually long trip: 800km"
        assert hits[0].codes == (DiagnosticCode.LONG_DISTANCE,)
        assert hits[0].confidence_delta == 25

    def test_impossible_long_distance(self):
        rule = make_rule({"distance_anomaly": {"max_threshold": 500}})
        hits = DistanceEvaluator().evaluate(trip(end_km=12500.0), rule)

        assert hits[0].codes == (DiagnosticCode.LONG_DISTANCE, DiagnosticCode.IMPOSSIBLE_DISTANCE)

    def test_within_bounds(self):
        rule = make_rule({"distance_anomaly": {"min_threshold": 1, "max_threshold": 2000}})
        assert DistanceEvaluator().evaluate(trip(), rule) == []

    def test_variance_only_block_never_fires(self):
        rule = make_rule({"distance_anomaly": {"variance_threshold": 200}})
        assert DistanceEvaluator().evaluate(trip(end_km=99999.0), rule) == []


class TestTimeEvaluator:
    """Test duration and start-time checks"""

    def test_short_duration(self):
        rule = make_rule({"time_anomaly": {"min_duration_hours": 0.5}})
        hits = TimeEvaluator().evaluate(trip(trip_end_date=TRIP_START + timedelta(minutes=18)), rule)

        assert hits[0].pattern == "Very short duration: 0.3h"
        assert hits[0].codes == (DiagnosticCode.SHORT_DURATION,)
        assert hits[0].confidence_delta == 20

    def test_long_duration(self):
        rule = make_rule({"time_anomaly": {"max_duration_hours": 12}})
        hits = TimeEvaluator().evaluate(trip(trip_end_date=TRIP_START + timedelta(hours=15)), rule)

        assert hits[0].codes == (DiagnosticCode.LONG_DURATION,)
        assert hits[0].confidence_delta == 20

    @pytest.mark.parametrize("hour", [0, 2, 4, 23])
    def test_unusual_start_time(self, hour):
        start = TRIP_START.replace(hour=hour)
        rule = make_rule({"time_anomaly": {"unusual_start_time": True}})
        hits = TimeEvaluator().evaluate(trip(trip_start_date=start, trip_end_date=start + timedelta(minutes=30)), rule)

        assert hits[0].pattern == f"Unusual start time: {hour}:00"
        assert hits[0].codes == (DiagnosticCode.LATE_NIGHT_EMERGENCY,)
        assert hits[0].confidence_delta == 15

    @pytest.mark.parametrize("hour", [5, 9, 22])
    def test_normal_start_time(self, hour):
        start = TRIP_START.replace(hour=hour)
        rule = make_rule({"time_anomaly": {"unusual_start_time": True}})

        assert TimeEvaluator().evaluate(trip(trip_start_date=start, trip_end_date=start + timedelta(minutes=30)), rule) == []


class TestFuelEvaluator:
    """Test zero fuel and efficiency variance checks"""

    def test_zero_fuel_long_trip(self):
        rule = make_rule({"fuel_anomaly": {"zero_fuel_consumption": True}})
        hits = FuelEvaluator().evaluate(trip(fuel_quantity=None), rule)

        assert hits[0].pattern.startswith("No fuel recorded")
        assert hits[0].codes == (DiagnosticCode.ZERO_FUEL_LONG_TRIP,)
        assert hits[0].confidence_delta >= 40

    def test_zero_fuel_short_trip_ignored(self):
        """Trips of 10km or less may legitimately record no fuel"""
        rule = make_rule({"fuel_anomaly": {"zero_fuel_consumption": True}})

        assert FuelEvaluator().evaluate(trip(end_km=10010.0, fuel_quantity=0), rule) == []

    def test_negative_fuel(self):
        rule = make_rule({"fuel_anomaly": {"zero_fuel_consumption": True}})
        hits = FuelEvaluator().evaluate(trip(fuel_quantity=-5), rule)

        assert len(hits) == 1
        assert hits[0].codes == (DiagnosticCode.ZERO_FUEL_LONG_TRIP, DiagnosticCode.NEGATIVE_FUEL)

    def test_efficiency_variance(self):
        provider = InMemoryBaselineRepository({"VH-001": 10.0})
        rule = make_rule({"fuel_anomaly": {"efficiency_variance_threshold": 50}})
        hits = FuelEvaluator(provider).evaluate(trip(calculated_kmpl=4.0), rule)

        assert hits[0].pattern == "Fuel efficiency variance: 60.0%"
        assert hits[0].codes == (DiagnosticCode.EFFICIENCY_VARIANCE,)
        assert hits[0].confidence_delta == 25

    def test_excessive_variance(self):
        provider = InMemoryBaselineRepository({"VH-001": 10.0})
        rule = make_rule({"fuel_anomaly": {"efficiency_variance_threshold": 50}})
        hits = FuelEvaluator(provider).evaluate(trip(calculated_kmpl=25.0), rule)

        assert DiagnosticCode.EXCESSIVE_FUEL_USAGE in hits[0].codes

    def test_variance_within_threshold(self):
        provider = InMemoryBaselineRepository({"VH-001": 10.0})
        rule = make_rule({"fuel_anomaly": {"efficiency_variance_threshold": 50}})

        assert FuelEvaluator(provider).evaluate(trip(calculated_kmpl=12.0), rule) == []

    def test_missing_baseline_skips_check(self):
        rule = make_rule({"fuel_anomaly": {"efficiency_variance_threshold": 50}})

        assert FuelEvaluator(InMemoryBaselineRepository()).evaluate(trip(calculated_kmpl=1.0), rule) == []
        assert FuelEvaluator(None).evaluate(trip(calculated_kmpl=1.0), rule) == []

    def test_failing_provider_degrades(self):
        """A lookup error never aborts the rule"""
        provider = MagicMock()
        provider.get_baseline_efficiency.side_effect = ConnectionError("db down")
        rule = make_rule({"fuel_anomaly": {"efficiency_variance_threshold": 50, "zero_fuel_consumption": True}})

        hits = FuelEvaluator(provider).evaluate(trip(fuel_quantity=None, calculated_kmpl=1.0), rule)

        assert [h.codes[0] for h in hits] == [DiagnosticCode.ZERO_FUEL_LONG_TRIP]

    def test_provider_called_with_odometer(self):
        provider = MagicMock()
        provider.get_baseline_efficiency.return_value = 10.0
        rule = make_rule({"fuel_anomaly": {"efficiency_variance_threshold": 50}})

        FuelEvaluator(provider).evaluate(trip(), rule)

        provider.get_baseline_efficiency.assert_called_once_with("VH-001", odometer_km=10000.0)


class TestPatternEvaluator:
    """Test keyword detection"""

    def test_each_keyword_adds_confidence(self):
        rule = make_rule(
            {"pattern_anomaly": {"maintenance_indicators": ["breakdown", "tow", "accident"]}},
            case_type="breakdown_trip",
        )
        hits = PatternEvaluator().evaluate(trip(notes="Towed after BREAKDOWN"), rule)

        assert [h.pattern for h in hits] == ['Indicator found: "breakdown"', 'Indicator found: "tow"']
        assert all(h.confidence_delta == 35 for h in hits)
        assert hits[0].codes == (DiagnosticCode.MINOR_BREAKDOWN,)
        assert hits[1].codes == (DiagnosticCode.MINOR_BREAKDOWN, DiagnosticCode.MAJOR_BREAKDOWN)

    def test_maintenance_cutoff_from_rule(self):
        """The rule's min_threshold splits short-distance from scheduled maintenance"""
        rule = make_rule(
            {
                "distance_anomaly": {"min_threshold": 50},
                "pattern_anomaly": {"maintenance_indicators": ["garage"]},
            },
            case_type="maintenance_trip",
        )
        evaluator = PatternEvaluator(maintenance_short_trip_km=500)

        short = evaluator.evaluate(trip(end_km=10020.0, destinations=["Garage"]), rule)
        long = evaluator.evaluate(trip(end_km=10080.0, destinations=["Garage"]), rule)

        assert short[0].codes == (DiagnosticCode.SHORT_DISTANCE_MAINTENANCE,)
        assert long[0].codes == (DiagnosticCode.SCHEDULED_MAINTENANCE,)

    def test_maintenance_cutoff_fallback(self):
        rule = make_rule({"pattern_anomaly": {"maintenance_indicators": ["service"]}}, case_type="maintenance_trip")

        assert PatternEvaluator(maintenance_short_trip_km=200).maintenance_cutoff(rule) == 200
        hits = PatternEvaluator(maintenance_short_trip_km=200).evaluate(trip(notes="annual service"), rule)
        assert hits[0].codes == (DiagnosticCode.SHORT_DISTANCE_MAINTENANCE,)

    def test_emergency_indicators(self):
        rule = make_rule({"emergency_indicators": ["hospital", "police"]}, case_type="emergency_trip")
        hits = PatternEvaluator().evaluate(trip(destinations=["General Hospital"], notes="police escort"), rule)

        assert hits[0].codes == (DiagnosticCode.MEDICAL_EMERGENCY,)
        assert hits[1].codes == (DiagnosticCode.EMERGENCY_SITUATION,)

    def test_custom_keyword_has_no_code(self):
        rule = make_rule({"emergency_indicators": ["flood"]}, case_type="emergency_trip")
        hits = PatternEvaluator().evaluate(trip(notes="flood detour"), rule)

        assert hits[0].codes == ()
        assert hits[0].confidence_delta == 35

    def test_keywords_deduplicated(self):
        rule = make_rule(
            {
                "pattern_anomaly": {"maintenance_indicators": ["Urgent"]},
                "emergency_indicators": ["urgent"],
            },
            case_type="emergency_trip",
        )
        assert len(PatternEvaluator().evaluate(trip(notes="urgent"), rule)) == 1

    def test_keyword_reported_as_configured(self):
        rule = make_rule({"pattern_anomaly": {"maintenance_indicators": ["Garage"]}}, case_type="maintenance_trip")
        hits = PatternEvaluator().evaluate(trip(end_km=10020.0, destinations=["city garage"]), rule)

        assert [h.pattern for h in hits] == ['Indicator found: "Garage"']
        assert hits[0].codes == (DiagnosticCode.SHORT_DISTANCE_MAINTENANCE,)
        assert rule.conditions.indicators == ["Garage"]

    def test_no_keywords_not_applicable(self):
        rule = make_rule({"pattern_anomaly": {"frequency_threshold": 3}}, case_type="unusual_pattern")
        assert not PatternEvaluator().applies_to(rule)
