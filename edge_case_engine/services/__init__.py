"""Service layer: evaluators, scoring, recommendations, detection, recovery."""

from .condition_evaluators import (
    EVALUATOR_REGISTRY,
    BaselineProvider,
    ConditionEvaluator,
    DistanceEvaluator,
    FuelEvaluator,
    PatternEvaluator,
    TimeEvaluator,
    build_evaluators,
    register_evaluator,
)
from .data_recovery_analyzer import DataRecoveryAnalyzer
from .edge_case_detector import EdgeCaseDetector
from .recommendation_generator import CaseProfile, RecommendationGenerator
from .severity_resolver import SeverityResolver, SeverityResult

__all__ = [
    "EVALUATOR_REGISTRY",
    "BaselineProvider",
    "CaseProfile",
    "ConditionEvaluator",
    "DataRecoveryAnalyzer",
    "DistanceEvaluator",
    "EdgeCaseDetector",
    "FuelEvaluator",
    "PatternEvaluator",
    "RecommendationGenerator",
    "SeverityResolver",
    "SeverityResult",
    "TimeEvaluator",
    "build_evaluators",
    "register_evaluator",
]
