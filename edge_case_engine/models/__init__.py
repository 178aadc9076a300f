"""Data models: pydantic inputs and rule configuration, dataclass outputs."""

from .edge_case_models import (
    PRODUCIBLE_CODES,
    RESERVED_CODES,
    CaseType,
    DataInconsistency,
    DataRecoveryScenario,
    DiagnosticCode,
    EdgeCaseDetection,
    EdgeCaseSummary,
    EvaluatorHit,
    RecoveryOption,
    ResolutionStatus,
    RiskLevel,
    ScenarioType,
    Severity,
)
from .rule_models import (
    DistanceCondition,
    EdgeCaseRule,
    FuelCondition,
    PatternCondition,
    RuleConditions,
    TimeCondition,
)
from .trip_models import TripRecord, as_utc

__all__ = [
    "PRODUCIBLE_CODES",
    "RESERVED_CODES",
    "CaseType",
    "DataInconsistency",
    "DataRecoveryScenario",
    "DiagnosticCode",
    "DistanceCondition",
    "EdgeCaseDetection",
    "EdgeCaseRule",
    "EdgeCaseSummary",
    "EvaluatorHit",
    "FuelCondition",
    "PatternCondition",
    "RecoveryOption",
    "ResolutionStatus",
    "RiskLevel",
    "RuleConditions",
    "ScenarioType",
    "Severity",
    "TimeCondition",
    "TripRecord",
    "as_utc",
]
