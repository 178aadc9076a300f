"""
Edge Case Detector Service

Applies detection rules to a single validated trip:

    evaluators → pooled hits → SeverityResolver → RecommendationGenerator
               → EdgeCaseDetection

A rule with no evaluator hits yields nothing. Rules are independent, so one
trip may produce several detections of different case types.
"""

import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

import structlog

from edge_case_engine.models.edge_case_models import EdgeCaseDetection, EvaluatorHit
from edge_case_engine.models.rule_models import EdgeCaseRule
from edge_case_engine.models.trip_models import TripRecord
from edge_case_engine.services.condition_evaluators import (
    DEFAULT_MAINTENANCE_SHORT_TRIP_KM,
    BaselineProvider,
    ConditionEvaluator,
    build_evaluators,
)
from edge_case_engine.services.recommendation_generator import RecommendationGenerator
from edge_case_engine.services.severity_resolver import SeverityResolver, detected_codes

logger = structlog.get_logger(__name__)

UNKNOWN_REGISTRATION = "UNKNOWN"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EdgeCaseDetector:
    """
    Runs rules against one trip.

    Example:
        >>> detector = EdgeCaseDetector(baseline_provider=baselines)
        >>> detections = detector.detect(trip, catalog.enabled_rules())
    """

    def __init__(
        self,
        evaluators: Optional[List[ConditionEvaluator]] = None,
        severity_resolver: Optional[SeverityResolver] = None,
        recommendation_generator: Optional[RecommendationGenerator] = None,
        baseline_provider: Optional[BaselineProvider] = None,
        maintenance_short_trip_km: float = DEFAULT_MAINTENANCE_SHORT_TRIP_KM,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.evaluators = evaluators or build_evaluators(
            baseline_provider=baseline_provider,
            maintenance_short_trip_km=maintenance_short_trip_km,
        )
        self.severity_resolver = severity_resolver or SeverityResolver()
        self.recommendation_generator = recommendation_generator or RecommendationGenerator()
        self.clock = clock or utc_now

    def collect_hits(self, trip: TripRecord, rule: EdgeCaseRule) -> List[EvaluatorHit]:
        hits: List[EvaluatorHit] = []
        for evaluator in self.evaluators:
            if evaluator.applies_to(rule):
                hits.extend(evaluator.evaluate(trip, rule))
        return hits

    def apply_rule(
        self,
        rule: EdgeCaseRule,
        trip: TripRecord,
        vehicle_registration: Optional[str] = None,
    ) -> Optional[EdgeCaseDetection]:
        """
        Apply one rule to one trip.

        Returns:
            EdgeCaseDetection, or None when no evaluator found anything
        """
        hits = self.collect_hits(trip, rule)
        if not hits:
            return None

        patterns = [hit.pattern for hit in hits]
        result = self.severity_resolver.resolve(hits, rule.severity_mapping)
        detected_at = self.clock()

        detection = EdgeCaseDetection(
            case_id=self._case_id(rule, trip, detected_at),
            case_type=rule.case_type,
            trip_id=trip.trip_id,
            vehicle_id=trip.vehicle_id,
            vehicle_registration=(
                vehicle_registration or trip.vehicle_registration or UNKNOWN_REGISTRATION
            ),
            severity=result.severity,
            confidence_score=result.confidence_score,
            detected_at=detected_at,
            description=self.recommendation_generator.describe(rule.case_type, patterns),
            patterns_detected=patterns,
            context={"trip_details": trip.trip_details()},
            recommendations=self.recommendation_generator.recommend(rule.case_type, result.severity),
            auto_actions_taken=list(rule.auto_actions),
            detected_codes=detected_codes(hits),
            rule_id=rule.rule_id,
        )

        logger.info(
            "Edge case detected",
            rule_id=rule.rule_id,
            trip_id=trip.trip_id,
            case_type=rule.case_type.value,
            severity=result.severity.value,
            confidence=result.confidence_score,
        )
        return detection

    def detect(
        self,
        trip: TripRecord,
        rules: Iterable[EdgeCaseRule],
        vehicle_registration: Optional[str] = None,
    ) -> List[EdgeCaseDetection]:
        detections = []
        for rule in rules:
            if not rule.enabled:
                continue
            detection = self.apply_rule(rule, trip, vehicle_registration)
            if detection:
                detections.append(detection)
        return detections

    @staticmethod
    def _case_id(rule: EdgeCaseRule, trip: TripRecord, detected_at: datetime) -> str:
        epoch_ms = int(detected_at.timestamp() * 1000)
        return f"{rule.rule_id}-{trip.trip_id}-{epoch_ms}-{uuid.uuid4().hex[:6]}"
