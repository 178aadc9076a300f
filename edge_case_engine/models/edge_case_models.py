"""
Edge Case Data Models
=====================

Enums and dataclasses produced by the edge-case detection and data-recovery
engine. Every structure is created fresh on each analysis call and is not
mutated afterwards; resolution status transitions belong to the caller.

Author: Fleet Analytics Team
Version: 1.0.0
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


# ══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════════════════════


class CaseType(str, Enum):
    """Kinds of exceptional trip situations"""
    MAINTENANCE_TRIP = "maintenance_trip"
    EMERGENCY_TRIP = "emergency_trip"
    DATA_ANOMALY = "data_anomaly"
    BREAKDOWN_TRIP = "breakdown_trip"
    UNUSUAL_PATTERN = "unusual_pattern"
    RECOVERY_SCENARIO = "recovery_scenario"


class Severity(str, Enum):
    """Ordinal urgency tiers (low < medium < high < critical)"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def requires_review(self) -> bool:
        return self in (Severity.HIGH, Severity.CRITICAL)


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class ResolutionStatus(str, Enum):
    """Review lifecycle, owned by the caller"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class DiagnosticCode(str, Enum):
    """
    Machine-readable tags for the specific anomaly variant found.

    Shared between the condition evaluators (which emit them) and the
    severity_mapping of each rule (which keys on them).
    """
    # Distance
    SHORT_DISTANCE = "short_distance"
    LONG_DISTANCE = "long_distance"
    IMPOSSIBLE_DISTANCE = "impossible_distance"
    # Time
    SHORT_DURATION = "short_duration"
    LONG_DURATION = "long_duration"
    LATE_NIGHT_EMERGENCY = "late_night_emergency"
    # Fuel
    ZERO_FUEL_LONG_TRIP = "zero_fuel_long_trip"
    NEGATIVE_FUEL = "negative_fuel"
    EFFICIENCY_VARIANCE = "efficiency_variance"
    EXCESSIVE_FUEL_USAGE = "excessive_fuel_usage"
    # Keywords
    SHORT_DISTANCE_MAINTENANCE = "short_distance_maintenance"
    SCHEDULED_MAINTENANCE = "scheduled_maintenance"
    MINOR_BREAKDOWN = "minor_breakdown"
    MAJOR_BREAKDOWN = "major_breakdown"
    ACCIDENT_RELATED = "accident_related"
    MEDICAL_EMERGENCY = "medical_emergency"
    EMERGENCY_SITUATION = "emergency_situation"
    # Reserved: accepted in severity mappings, not emitted by any evaluator
    EMERGENCY_MAINTENANCE = "emergency_maintenance"
    BREAKDOWN_EMERGENCY = "breakdown_emergency"
    UNUSUAL_FREQUENCY = "unusual_frequency"
    ROUTE_ANOMALY = "route_anomaly"
    BEHAVIOR_PATTERN = "behavior_pattern"


RESERVED_CODES: FrozenSet[DiagnosticCode] = frozenset(
    {
        DiagnosticCode.EMERGENCY_MAINTENANCE,
        DiagnosticCode.BREAKDOWN_EMERGENCY,
        DiagnosticCode.UNUSUAL_FREQUENCY,
        DiagnosticCode.ROUTE_ANOMALY,
        DiagnosticCode.BEHAVIOR_PATTERN,
    }
)

PRODUCIBLE_CODES: FrozenSet[DiagnosticCode] = frozenset(DiagnosticCode) - RESERVED_CODES


class ScenarioType(str, Enum):
    """Kinds of data-integrity problems found in a trip history"""
    MISSING_TRIP_DATA = "missing_trip_data"
    CORRUPTED_ODOMETER = "corrupted_odometer"
    FUEL_DATA_LOSS = "fuel_data_loss"
    INCOMPLETE_TRIP = "incomplete_trip"
    DUPLICATE_DETECTION = "duplicate_detection"


class RiskLevel(str, Enum):
    """Risk of applying a recovery method"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ══════════════════════════════════════════════════════════════════════════════
# DATA CLASSES
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class EvaluatorHit:
    """
    One finding from a condition evaluator.

    codes holds the base code first, then any escalation (e.g. short_distance
    then impossible_distance). It is empty for custom keywords outside every
    keyword category. confidence_delta is added to the rule's running score
    before capping.
    """
    pattern: str
    codes: Tuple[DiagnosticCode, ...]
    confidence_delta: int


@dataclass
class EdgeCaseDetection:
    """
    One rule's positive finding on one trip.
    Only constructed when at least one pattern was detected.
    """
    case_id: str
    case_type: CaseType
    trip_id: str
    vehicle_id: str
    vehicle_registration: str
    severity: Severity
    confidence_score: int  # 0-100
    detected_at: datetime
    description: str
    patterns_detected: List[str]
    context: Dict[str, Any] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)
    auto_actions_taken: List[str] = field(default_factory=list)
    detected_codes: List[DiagnosticCode] = field(default_factory=list)
    rule_id: Optional[str] = None
    resolution_status: ResolutionStatus = ResolutionStatus.PENDING

    @property
    def requires_manual_review(self) -> bool:
        return self.severity.requires_review

    @property
    def is_pending_review(self) -> bool:
        return (
            self.requires_manual_review
            and self.resolution_status == ResolutionStatus.PENDING
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "case_id": self.case_id,
            "case_type": self.case_type.value,
            "trip_id": self.trip_id,
            "vehicle_id": self.vehicle_id,
            "vehicle_registration": self.vehicle_registration,
            "severity": self.severity.value,
            "confidence_score": self.confidence_score,
            "detected_at": self.detected_at.isoformat(),
            "description": self.description,
            "patterns_detected": list(self.patterns_detected),
            "context": self.context,
            "recommendations": list(self.recommendations),
            "auto_actions_taken": list(self.auto_actions_taken),
            "detected_codes": [code.value for code in self.detected_codes],
            "rule_id": self.rule_id,
            "requires_manual_review": self.requires_manual_review,
            "resolution_status": self.resolution_status.value,
        }


@dataclass(frozen=True)
class DataInconsistency:
    """A single field-level problem found by an integrity scan"""
    field: str
    confidence: int
    expected_value: Optional[Any] = None
    actual_value: Optional[Any] = None
    trip_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "expected_value": self.expected_value,
            "actual_value": self.actual_value,
            "confidence": self.confidence,
            "trip_id": self.trip_id,
        }


@dataclass(frozen=True)
class RecoveryOption:
    """A candidate method for repairing inconsistent data"""
    method: str
    description: str
    risk_level: RiskLevel
    success_probability: int  # percent
    estimated_accuracy: int  # percent

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "description": self.description,
            "risk_level": self.risk_level.value,
            "success_probability": self.success_probability,
            "estimated_accuracy": self.estimated_accuracy,
        }


@dataclass
class DataRecoveryScenario:
    """
    One integrity scan's positive finding on one vehicle's trip history.
    recovery_options are ranked best first.
    """
    scenario_id: str
    scenario_type: ScenarioType
    vehicle_id: str
    affected_trips: List[str]
    data_inconsistencies: List[DataInconsistency]
    recovery_options: List[RecoveryOption]
    recommended_action: str

    @property
    def best_option(self) -> Optional[RecoveryOption]:
        return self.recovery_options[0] if self.recovery_options else None

    @property
    def max_confidence(self) -> int:
        return max((i.confidence for i in self.data_inconsistencies), default=0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_id": self.scenario_id,
            "scenario_type": self.scenario_type.value,
            "vehicle_id": self.vehicle_id,
            "affected_trips": list(self.affected_trips),
            "data_inconsistencies": [i.to_dict() for i in self.data_inconsistencies],
            "recovery_options": [o.to_dict() for o in self.recovery_options],
            "recommended_action": self.recommended_action,
        }


@dataclass
class EdgeCaseSummary:
    """Aggregate of a batch run across many trips"""
    total_cases_detected: int = 0
    cases_by_type: Dict[str, int] = field(default_factory=dict)
    cases_by_severity: Dict[str, int] = field(default_factory=dict)
    pending_reviews: int = 0
    recent_detections: List[EdgeCaseDetection] = field(default_factory=list)
    trips_analyzed: int = 0
    trips_skipped: int = 0
    all_detections: List[EdgeCaseDetection] = field(default_factory=list, repr=False)

    def group_by_vehicle(self) -> Dict[str, List[EdgeCaseDetection]]:
        grouped: Dict[str, List[EdgeCaseDetection]] = {}
        for detection in self.all_detections:
            grouped.setdefault(detection.vehicle_id, []).append(detection)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response"""
        return {
            "total_cases_detected": self.total_cases_detected,
            "cases_by_type": dict(self.cases_by_type),
            "cases_by_severity": dict(self.cases_by_severity),
            "pending_reviews": self.pending_reviews,
            "recent_detections": [d.to_dict() for d in self.recent_detections],
            "trips_analyzed": self.trips_analyzed,
            "trips_skipped": self.trips_skipped,
        }
