"""
Edge Case Rule Models

Declarative rule configuration. Rules are immutable once loaded; the catalog
swaps in modified copies (model_copy) when a rule is enabled or disabled.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .edge_case_models import CaseType, DiagnosticCode, Severity


class _ConditionBlock(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class DistanceCondition(_ConditionBlock):
    min_threshold: Optional[float] = None
    max_threshold: Optional[float] = None
    variance_threshold: Optional[float] = None


class TimeCondition(_ConditionBlock):
    min_duration_hours: Optional[float] = None
    max_duration_hours: Optional[float] = None
    unusual_start_time: bool = False


class FuelCondition(_ConditionBlock):
    efficiency_variance_threshold: Optional[float] = Field(default=None, gt=0)
    zero_fuel_consumption: bool = False
    excessive_fuel_usage: bool = False


class PatternCondition(_ConditionBlock):
    frequency_threshold: Optional[int] = None
    route_deviation_threshold: Optional[float] = None
    maintenance_indicators: List[str] = Field(default_factory=list)


class RuleConditions(_ConditionBlock):
    distance_anomaly: Optional[DistanceCondition] = None
    time_anomaly: Optional[TimeCondition] = None
    fuel_anomaly: Optional[FuelCondition] = None
    pattern_anomaly: Optional[PatternCondition] = None
    emergency_indicators: List[str] = Field(default_factory=list)

    @property
    def indicators(self) -> List[str]:
        """
        Maintenance and emergency keywords as configured (stripped), declaration
        order, de-duplicated case-insensitively.
        """
        combined = list(self.emergency_indicators)
        if self.pattern_anomaly:
            combined = list(self.pattern_anomaly.maintenance_indicators) + combined

        seen = set()
        keywords = []
        for keyword in combined:
            keyword = keyword.strip()
            norm = keyword.lower()
            if norm and norm not in seen:
                seen.add(norm)
                keywords.append(keyword)
        return keywords


class EdgeCaseRule(BaseModel):
    """
    A detection rule.

    severity_mapping is consulted in declaration order after the score-derived
    severity is computed; the first code that was detected wins.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    rule_id: str = Field(..., min_length=1)
    rule_name: str
    case_type: CaseType
    enabled: bool = True
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    severity_mapping: Dict[DiagnosticCode, Severity] = Field(default_factory=dict)
    auto_actions: List[str] = Field(default_factory=list)

    @field_validator("rule_id")
    @classmethod
    def strip_rule_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("rule_id must not be blank")
        return v
