"""
Condition Evaluators

Independent, side-effect-free checks over a single trip. Each evaluator looks
at one part of a rule's conditions and returns zero or more EvaluatorHit
(pattern text, diagnostic codes, confidence delta). A rule's hits are pooled
before scoring.

Evaluators are registered by name; a new kind of check only declares its
name, when it applies to a rule, and how to evaluate:

    @register_evaluator
    class NightFuelEvaluator(ConditionEvaluator):
        name = "night_fuel"

        def applies_to(self, rule):
            return rule.case_type == CaseType.EMERGENCY_TRIP
        ...
"""

from typing import Any, Dict, List, Optional, Protocol, Type

import structlog

from edge_case_engine.models.edge_case_models import DiagnosticCode, EvaluatorHit
from edge_case_engine.models.rule_models import EdgeCaseRule
from edge_case_engine.models.trip_models import TripRecord

logger = structlog.get_logger(__name__)


class BaselineProvider(Protocol):
    """External lookup of a vehicle's historical fuel efficiency."""

    def get_baseline_efficiency(
        self, vehicle_id: str, odometer_km: Optional[float] = None
    ) -> Optional[float]:
        ...


EVALUATOR_REGISTRY: Dict[str, Type["ConditionEvaluator"]] = {}


def register_evaluator(cls: Type["ConditionEvaluator"]) -> Type["ConditionEvaluator"]:
    """Class decorator adding an evaluator to the registry under its name."""
    EVALUATOR_REGISTRY[cls.name] = cls
    return cls


def format_km(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


class ConditionEvaluator:
    """Base class. Subclasses set `name` and implement evaluate()."""

    name: str = ""

    @classmethod
    def from_options(cls, **options: Any) -> "ConditionEvaluator":
        """Build from engine-wide options; ignores the ones it does not use."""
        return cls()

    def applies_to(self, rule: EdgeCaseRule) -> bool:
        return getattr(rule.conditions, self.name, None) is not None

    def evaluate(self, trip: TripRecord, rule: EdgeCaseRule) -> List[EvaluatorHit]:
        raise NotImplementedError


# ═══════════════════════════════════════════════════════════════════════════════
# DISTANCE
# ═══════════════════════════════════════════════════════════════════════════════


@register_evaluator
class DistanceEvaluator(ConditionEvaluator):
    """Flags trips shorter or longer than the rule's distance thresholds."""

    name = "distance_anomaly"

    SHORT_CONFIDENCE = 30
    LONG_CONFIDENCE = 25
    IMPOSSIBLE_MIN_KM = 1
    IMPOSSIBLE_MAX_KM = 1000

    def evaluate(self, trip: TripRecord, rule: EdgeCaseRule) -> List[EvaluatorHit]:
        cond = rule.conditions.distance_anomaly
        distance = trip.distance
        hits: List[EvaluatorHit] = []

        if cond.min_threshold is not None and distance < cond.min_threshold:
            pattern = f"Very short trip: {format_km(distance)}km"
            codes = (DiagnosticCode.SHORT_DISTANCE,)
            if distance < self.IMPOSSIBLE_MIN_KM:
                pattern += " (impossible distance)"
                codes += (DiagnosticCode.IMPOSSIBLE_DISTANCE,)
            hits.append(EvaluatorHit(pattern, codes, self.SHORT_CONFIDENCE))

        if cond.max_threshold is not None and distance > cond.max_threshold:
            pattern = f"Unusually long trip: {format_km(distance)}km"
            codes = (DiagnosticCode.LONG_DISTANCE,)
            if distance > self.IMPOSSIBLE_MAX_KM:
                pattern += " (impossible distance)"
                codes += (DiagnosticCode.IMPOSSIBLE_DISTANCE,)
            hits.append(EvaluatorHit(pattern, codes, self.LONG_CONFIDENCE))

        return hits


# ═══════════════════════════════════════════════════════════════════════════════
# TIME
# ═══════════════════════════════════════════════════════════════════════════════


@register_evaluator
class TimeEvaluator(ConditionEvaluator):
    """Duration bounds and late-night / early-morning starts."""

    name = "time_anomaly"

    DURATION_CONFIDENCE = 20
    UNUSUAL_START_CONFIDENCE = 15
    EARLIEST_NORMAL_HOUR = 5
    LATEST_NORMAL_HOUR = 22

    def evaluate(self, trip: TripRecord, rule: EdgeCaseRule) -> List[EvaluatorHit]:
        cond = rule.conditions.time_anomaly
        hours = trip.duration_hours
        hits: List[EvaluatorHit] = []

        if cond.min_duration_hours is not None and hours < cond.min_duration_hours:
            hits.append(
                EvaluatorHit(
                    f"Very short duration: {hours:.1f}h",
                    (DiagnosticCode.SHORT_DURATION,),
                    self.DURATION_CONFIDENCE,
                )
            )

        if cond.max_duration_hours is not None and hours > cond.max_duration_hours:
            hits.append(
                EvaluatorHit(
                    f"Unusually long duration: {hours:.1f}h",
                    (DiagnosticCode.LONG_DURATION,),
                    self.DURATION_CONFIDENCE,
                )
            )

        if cond.unusual_start_time:
            # Local hour as recorded on the trip
            hour = trip.trip_start_date.hour
            if hour < self.EARLIEST_NORMAL_HOUR or hour > self.LATEST_NORMAL_HOUR:
                hits.append(
                    EvaluatorHit(
                        f"Unusual start time: {hour}:00",
                        (DiagnosticCode.LATE_NIGHT_EMERGENCY,),
                        self.UNUSUAL_START_CONFIDENCE,
                    )
                )

        return hits


# ═══════════════════════════════════════════════════════════════════════════════
# FUEL
# ═══════════════════════════════════════════════════════════════════════════════


@register_evaluator
class FuelEvaluator(ConditionEvaluator):
    """
    Zero or negative fuel on a real trip, and efficiency deviation from the
    vehicle's historical baseline.

    The baseline comes from an external provider. A missing provider, a
    missing baseline or a failing lookup all skip the efficiency check.
    """

    name = "fuel_anomaly"

    ZERO_FUEL_MIN_KM = 10
    ZERO_FUEL_CONFIDENCE = 40
    VARIANCE_CONFIDENCE = 25
    EXCESSIVE_VARIANCE_PCT = 100

    def __init__(self, baseline_provider: Optional[BaselineProvider] = None):
        self.baseline_provider = baseline_provider

    @classmethod
    def from_options(cls, **options: Any) -> "FuelEvaluator":
        return cls(baseline_provider=options.get("baseline_provider"))

    def evaluate(self, trip: TripRecord, rule: EdgeCaseRule) -> List[EvaluatorHit]:
        cond = rule.conditions.fuel_anomaly
        distance = trip.distance
        fuel = trip.fuel_quantity
        hits: List[EvaluatorHit] = []

        if cond.zero_fuel_consumption and (fuel is None or fuel <= 0) and distance > self.ZERO_FUEL_MIN_KM:
            pattern = f"No fuel recorded for {format_km(distance)}km trip"
            codes = (DiagnosticCode.ZERO_FUEL_LONG_TRIP,)
            if fuel is not None and fuel < 0:
                pattern += f" (negative quantity {fuel:g})"
                codes += (DiagnosticCode.NEGATIVE_FUEL,)
            hits.append(EvaluatorHit(pattern, codes, self.ZERO_FUEL_CONFIDENCE))

        if cond.efficiency_variance_threshold is not None and trip.calculated_kmpl and trip.calculated_kmpl > 0:
            baseline = self._lookup_baseline(trip)
            if baseline:
                variance = abs(trip.calculated_kmpl - baseline) / baseline * 100
                if variance > cond.efficiency_variance_threshold:
                    pattern = f"Fuel efficiency variance: {variance:.1f}%"
                    codes = (DiagnosticCode.EFFICIENCY_VARIANCE,)
                    if variance > self.EXCESSIVE_VARIANCE_PCT:
                        pattern += " (excessive fuel usage)"
                        codes += (DiagnosticCode.EXCESSIVE_FUEL_USAGE,)
                    hits.append(EvaluatorHit(pattern, codes, self.VARIANCE_CONFIDENCE))

        return hits

    def _lookup_baseline(self, trip: TripRecord) -> Optional[float]:
        if self.baseline_provider is None:
            return None
        try:
            baseline = self.baseline_provider.get_baseline_efficiency(
                trip.vehicle_id, odometer_km=trip.start_km
            )
        except Exception as e:
            logger.warning(
                "Baseline lookup failed, skipping efficiency check",
                vehicle_id=trip.vehicle_id,
                error=str(e),
            )
            return None

        if baseline is None or baseline <= 0:
            logger.debug("No baseline efficiency available", vehicle_id=trip.vehicle_id)
            return None
        return float(baseline)


# ═══════════════════════════════════════════════════════════════════════════════
# KEYWORDS
# ═══════════════════════════════════════════════════════════════════════════════

MAINTENANCE_KEYWORDS = frozenset({"service", "repair", "maintenance", "workshop", "garage"})
BREAKDOWN_KEYWORDS = frozenset({"breakdown", "tow", "stuck", "mechanical"})
MAJOR_BREAKDOWN_KEYWORDS = frozenset({"tow", "stuck"})
ACCIDENT_KEYWORDS = frozenset({"accident"})
EMERGENCY_KEYWORDS = frozenset({"hospital", "emergency", "urgent", "ambulance", "police"})
MEDICAL_KEYWORDS = frozenset({"hospital", "ambulance"})

DEFAULT_MAINTENANCE_SHORT_TRIP_KM = 50.0


@register_evaluator
class PatternEvaluator(ConditionEvaluator):
    """
    Keyword search over destinations and notes.

    Every configured keyword found (case-insensitive substring) adds its own
    confidence; codes depend on the keyword's category. Keywords outside all
    categories still count as evidence but carry no code.

    Maintenance keywords split into short-distance vs scheduled maintenance at
    a cutoff taken from the rule's own distance min_threshold, falling back to
    maintenance_short_trip_km.
    """

    name = "pattern_anomaly"

    KEYWORD_CONFIDENCE = 35

    def __init__(self, maintenance_short_trip_km: float = DEFAULT_MAINTENANCE_SHORT_TRIP_KM):
        self.maintenance_short_trip_km = maintenance_short_trip_km

    @classmethod
    def from_options(cls, **options: Any) -> "PatternEvaluator":
        cutoff = options.get("maintenance_short_trip_km")
        if cutoff is None:
            return cls()
        return cls(maintenance_short_trip_km=cutoff)

    def applies_to(self, rule: EdgeCaseRule) -> bool:
        return bool(rule.conditions.indicators)

    def maintenance_cutoff(self, rule: EdgeCaseRule) -> float:
        distance_cond = rule.conditions.distance_anomaly
        if distance_cond is not None and distance_cond.min_threshold is not None:
            return distance_cond.min_threshold
        return self.maintenance_short_trip_km

    def evaluate(self, trip: TripRecord, rule: EdgeCaseRule) -> List[EvaluatorHit]:
        text = trip.search_text
        hits: List[EvaluatorHit] = []

        for keyword in rule.conditions.indicators:
            # Match case-insensitively, report as configured
            if keyword.lower() not in text:
                continue
            hits.append(
                EvaluatorHit(
                    f'Indicator found: "{keyword}"',
                    tuple(self._codes_for(keyword.lower(), trip, rule)),
                    self.KEYWORD_CONFIDENCE,
                )
            )

        return hits

    def _codes_for(self, keyword: str, trip: TripRecord, rule: EdgeCaseRule) -> List[DiagnosticCode]:
        codes: List[DiagnosticCode] = []

        if keyword in MAINTENANCE_KEYWORDS:
            if trip.distance < self.maintenance_cutoff(rule):
                codes.append(DiagnosticCode.SHORT_DISTANCE_MAINTENANCE)
            else:
                codes.append(DiagnosticCode.SCHEDULED_MAINTENANCE)

        if keyword in BREAKDOWN_KEYWORDS:
            codes.append(DiagnosticCode.MINOR_BREAKDOWN)
            if keyword in MAJOR_BREAKDOWN_KEYWORDS:
                codes.append(DiagnosticCode.MAJOR_BREAKDOWN)

        if keyword in ACCIDENT_KEYWORDS:
            codes.append(DiagnosticCode.ACCIDENT_RELATED)

        if keyword in EMERGENCY_KEYWORDS:
            if keyword in MEDICAL_KEYWORDS:
                codes.append(DiagnosticCode.MEDICAL_EMERGENCY)
            else:
                codes.append(DiagnosticCode.EMERGENCY_SITUATION)

        return codes


def build_evaluators(
    baseline_provider: Optional[BaselineProvider] = None,
    maintenance_short_trip_km: float = DEFAULT_MAINTENANCE_SHORT_TRIP_KM,
) -> List[ConditionEvaluator]:
    """Instantiate every registered evaluator, in registration order."""
    return [
        evaluator_cls.from_options(
            baseline_provider=baseline_provider,
            maintenance_short_trip_km=maintenance_short_trip_km,
        )
        for evaluator_cls in EVALUATOR_REGISTRY.values()
    ]
