"""
Recommendation Generator Service

Description text and ordered next steps for a detection. Case-type profiles
are kept in a registry keyed by CaseType so new case types can bring their
own wording.

Usage:
    generator = RecommendationGenerator()
    generator.describe(CaseType.BREAKDOWN_TRIP, ["Very short trip: 5km"])
    generator.recommend(CaseType.BREAKDOWN_TRIP, Severity.HIGH)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import structlog

from edge_case_engine.models.edge_case_models import CaseType, Severity

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CaseProfile:
    """Lead sentence and case-specific action items for one case type."""

    lead: str
    actions: List[str] = field(default_factory=list)


DEFAULT_CASE_PROFILES: Dict[CaseType, CaseProfile] = {
    CaseType.MAINTENANCE_TRIP: CaseProfile(
        lead="Potential maintenance or service trip detected",
        actions=[
            "Verify if trip was for vehicle maintenance",
            "Update trip category to maintenance if confirmed",
            "Exclude from efficiency calculations",
            "Check maintenance records for correlation",
        ],
    ),
    CaseType.EMERGENCY_TRIP: CaseProfile(
        lead="Emergency or urgent trip pattern identified",
        actions=[
            "Confirm if trip was emergency-related",
            "Document emergency circumstances",
            "Review driver and vehicle safety",
            "Consider excluding from performance metrics",
        ],
    ),
    CaseType.DATA_ANOMALY: CaseProfile(
        lead="Data inconsistency or anomaly detected",
        actions=[
            "Verify odometer and fuel readings",
            "Check for data entry errors",
            "Cross-reference with original documents",
            "Consider data correction if errors found",
        ],
    ),
    CaseType.BREAKDOWN_TRIP: CaseProfile(
        lead="Possible vehicle breakdown or mechanical issue",
        actions=[
            "Investigate vehicle mechanical condition",
            "Schedule immediate inspection if needed",
            "Document breakdown details",
            "Create maintenance work order",
        ],
    ),
    CaseType.UNUSUAL_PATTERN: CaseProfile(
        lead="Unusual trip pattern that requires attention",
        actions=[
            "Compare trip with the vehicle's usual routes",
            "Confirm trip purpose with the assigned driver",
            "Monitor subsequent trips for recurrence",
        ],
    ),
    CaseType.RECOVERY_SCENARIO: CaseProfile(
        lead="Data recovery scenario identified",
        actions=[
            "Identify the affected trip records",
            "Choose a recovery method for the inconsistent data",
            "Validate corrected records against source documents",
        ],
    ),
}

SEVERITY_RECOMMENDATIONS: Dict[Severity, List[str]] = {
    Severity.CRITICAL: [
        "Immediate attention required",
        "Escalate to fleet manager",
        "Suspend vehicle if safety concern",
    ],
    Severity.HIGH: [
        "Review within 24 hours",
        "Notify relevant personnel",
    ],
    Severity.MEDIUM: [
        "Review within 3 days",
        "Add to monitoring list",
    ],
    Severity.LOW: [
        "Review when convenient",
        "Monitor for patterns",
    ],
}

FALLBACK_LEAD = "Edge case detected"


class RecommendationGenerator:
    """Builds description text and recommendation lists for detections."""

    def __init__(
        self,
        case_profiles: Optional[Dict[CaseType, CaseProfile]] = None,
        severity_recommendations: Optional[Dict[Severity, List[str]]] = None,
    ):
        self.case_profiles = dict(DEFAULT_CASE_PROFILES)
        if case_profiles:
            self.case_profiles.update(case_profiles)
        self.severity_recommendations = severity_recommendations or SEVERITY_RECOMMENDATIONS

    def register_profile(self, case_type: CaseType, profile: CaseProfile) -> None:
        self.case_profiles[case_type] = profile
        logger.info("Registered case profile", case_type=case_type.value)

    def describe(self, case_type: CaseType, patterns: Sequence[str]) -> str:
        profile = self.case_profiles.get(case_type)
        lead = profile.lead if profile else FALLBACK_LEAD
        return f"{lead} - {', '.join(patterns)}"

    def recommend(self, case_type: CaseType, severity: Severity) -> List[str]:
        """Case-type action items first, then severity urgency items."""
        profile = self.case_profiles.get(case_type)
        case_items = list(profile.actions) if profile else []
        return case_items + list(self.severity_recommendations.get(severity, []))
