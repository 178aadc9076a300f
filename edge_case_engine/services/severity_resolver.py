"""
Severity Resolver Service

Turns a rule's pooled evaluator hits into a confidence score and a severity.

Scoring:
- Confidence deltas are summed without an intermediate cap, so several weak
  signals can combine; only the reported score is clamped to 0-100.
- Default severity: score >= 70 → high, >= 40 → medium, else low.
- The rule's severity_mapping is then walked in declaration order and the
  first code that was detected replaces the default outright.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import structlog

from edge_case_engine.models.edge_case_models import DiagnosticCode, EvaluatorHit, Severity

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SeverityResult:
    """Outcome of scoring one rule invocation."""

    raw_score: int
    confidence_score: int
    default_severity: Severity
    severity: Severity
    override_code: Optional[DiagnosticCode] = None

    @property
    def overridden(self) -> bool:
        return self.override_code is not None


class SeverityResolver:
    """
    Example:
        >>> resolver = SeverityResolver()
        >>> resolver.default_severity(85)
        <Severity.HIGH: 'high'>
    """

    HIGH_THRESHOLD = 70
    MEDIUM_THRESHOLD = 40
    MIN_CONFIDENCE = 0
    MAX_CONFIDENCE = 100

    def __init__(self, high_threshold: Optional[int] = None, medium_threshold: Optional[int] = None):
        self.high_threshold = high_threshold if high_threshold is not None else self.HIGH_THRESHOLD
        self.medium_threshold = medium_threshold if medium_threshold is not None else self.MEDIUM_THRESHOLD

    def raw_score(self, hits: Sequence[EvaluatorHit]) -> int:
        return sum(hit.confidence_delta for hit in hits)

    def clamp(self, score: int) -> int:
        return max(self.MIN_CONFIDENCE, min(self.MAX_CONFIDENCE, score))

    def default_severity(self, score: int) -> Severity:
        if score >= self.high_threshold:
            return Severity.HIGH
        if score >= self.medium_threshold:
            return Severity.MEDIUM
        return Severity.LOW

    def find_override(
        self,
        severity_mapping: Dict[DiagnosticCode, Severity],
        detected_codes: Sequence[DiagnosticCode],
    ) -> Optional[DiagnosticCode]:
        """First mapping key, in declaration order, present among detected codes."""
        detected = set(detected_codes)
        for code in severity_mapping:
            if code in detected:
                return code
        return None

    def resolve(
        self,
        hits: Sequence[EvaluatorHit],
        severity_mapping: Dict[DiagnosticCode, Severity],
    ) -> SeverityResult:
        raw = self.raw_score(hits)
        default = self.default_severity(raw)
        override_code = self.find_override(severity_mapping, detected_codes(hits))

        severity = severity_mapping[override_code] if override_code is not None else default
        if override_code is not None and severity != default:
            logger.debug(
                "Severity overridden by rule mapping",
                code=override_code.value,
                default=default.value,
                severity=severity.value,
            )

        return SeverityResult(
            raw_score=raw,
            confidence_score=self.clamp(raw),
            default_severity=default,
            severity=severity,
            override_code=override_code,
        )


def detected_codes(hits: Sequence[EvaluatorHit]) -> List[DiagnosticCode]:
    """All codes across hits, first occurrence order, without repeats."""
    codes: List[DiagnosticCode] = []
    for hit in hits:
        for code in hit.codes:
            if code not in codes:
                codes.append(code)
    return codes
