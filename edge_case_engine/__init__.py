"""
Edge Case Engine

Detects exceptional fleet trips (maintenance, emergency, breakdown, bad data)
with a configurable rule catalog, and scans vehicle trip histories for
integrity problems that need data recovery.
"""

from edge_case_engine.exceptions import EdgeCaseEngineError, RuleCatalogError
from edge_case_engine.models import (
    CaseType,
    DataRecoveryScenario,
    EdgeCaseDetection,
    EdgeCaseRule,
    EdgeCaseSummary,
    ScenarioType,
    Severity,
    TripRecord,
)
from edge_case_engine.orchestrators import EdgeCaseOrchestrator, OrchestratorConfig
from edge_case_engine.rules import RuleCatalog

__version__ = "1.0.0"

__all__ = [
    "CaseType",
    "DataRecoveryScenario",
    "EdgeCaseDetection",
    "EdgeCaseEngineError",
    "EdgeCaseOrchestrator",
    "EdgeCaseRule",
    "EdgeCaseSummary",
    "OrchestratorConfig",
    "RuleCatalog",
    "RuleCatalogError",
    "ScenarioType",
    "Severity",
    "TripRecord",
]
