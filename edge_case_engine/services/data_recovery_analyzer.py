"""
Data Recovery Analyzer Service

Scans one vehicle's trip history for data-integrity problems and proposes
ranked recovery options.

Three independent scans, all over the history sorted by start time:
- Missing data: duplicate serial numbers, gaps of more than a week between
  one trip's end and the next trip's start
- Odometer corruption: readings going backwards, jumps of more than 1000km
  within 24 hours
- Fuel inconsistency: no fuel on trips over 50km, negative fuel quantities

Each scan yields at most one DataRecoveryScenario and only when it found at
least one inconsistency.

Usage:
    analyzer = DataRecoveryAnalyzer()
    scenarios = analyzer.analyze("VH-001", trips)
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

import structlog

from edge_case_engine.models.edge_case_models import (
    DataInconsistency,
    DataRecoveryScenario,
    RecoveryOption,
    RiskLevel,
    ScenarioType,
)
from edge_case_engine.models.trip_models import TripRecord, as_utc
from edge_case_engine.services.condition_evaluators import format_km

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# RECOVERY OPTIONS
# ═══════════════════════════════════════════════════════════════════════════════

MISSING_DATA_OPTIONS = [
    RecoveryOption(
        method="manual_data_entry",
        description="Manually enter missing trip data from physical records",
        risk_level=RiskLevel.LOW,
        success_probability=85,
        estimated_accuracy=90,
    ),
    RecoveryOption(
        method="interpolation",
        description="Estimate missing data using neighboring trip patterns",
        risk_level=RiskLevel.MEDIUM,
        success_probability=70,
        estimated_accuracy=75,
    ),
]

ODOMETER_OPTIONS = [
    RecoveryOption(
        method="odometer_verification",
        description="Verify actual odometer reading and correct records",
        risk_level=RiskLevel.LOW,
        success_probability=90,
        estimated_accuracy=95,
    ),
    RecoveryOption(
        method="progressive_correction",
        description="Correct readings progressively based on distance patterns",
        risk_level=RiskLevel.MEDIUM,
        success_probability=75,
        estimated_accuracy=80,
    ),
]

FUEL_OPTIONS = [
    RecoveryOption(
        method="fuel_receipt_verification",
        description="Cross-reference with fuel receipts and payment records",
        risk_level=RiskLevel.LOW,
        success_probability=85,
        estimated_accuracy=90,
    ),
    RecoveryOption(
        method="average_consumption_estimation",
        description="Estimate fuel consumption based on vehicle average efficiency",
        risk_level=RiskLevel.MEDIUM,
        success_probability=70,
        estimated_accuracy=75,
    ),
]


def rank_options(options: Sequence[RecoveryOption]) -> List[RecoveryOption]:
    """Best first: success probability, then estimated accuracy."""
    return sorted(
        options,
        key=lambda o: (o.success_probability, o.estimated_accuracy),
        reverse=True,
    )


def sort_by_start(trips: Sequence[TripRecord]) -> List[TripRecord]:
    return sorted(trips, key=lambda t: as_utc(t.trip_start_date))


class DataRecoveryAnalyzer:
    """
    Integrity scans over a single vehicle's trip history.

    Attributes:
        history_limit: Optional cap; when set, only the most recent N trips
                       (after sorting) are scanned. None scans everything.
    """

    DUPLICATE_SERIAL_CONFIDENCE = 90
    TIME_GAP_CONFIDENCE = 70
    MAX_GAP_DAYS = 7

    ODOMETER_BACKWARDS_CONFIDENCE = 95
    ODOMETER_JUMP_CONFIDENCE = 85
    MAX_JUMP_KM = 1000
    JUMP_WINDOW_HOURS = 24

    ZERO_FUEL_CONFIDENCE = 80
    NEGATIVE_FUEL_CONFIDENCE = 95
    ZERO_FUEL_MIN_KM = 50

    def __init__(
        self,
        history_limit: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.history_limit = history_limit
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def analyze(self, vehicle_id: str, trips: Sequence[TripRecord]) -> List[DataRecoveryScenario]:
        """
        Run all three scans.

        The history is sorted by start time before scanning; callers need not
        pre-sort. Returns an empty list when nothing is wrong.
        """
        history = sort_by_start(trips)
        if self.history_limit is not None and len(history) > self.history_limit:
            logger.warning(
                "Recovery history truncated",
                vehicle_id=vehicle_id,
                supplied=len(history),
                dropped=len(history) - self.history_limit,
                history_limit=self.history_limit,
            )
            history = history[-self.history_limit:]

        scenarios = []
        for scan in (self.detect_missing_trip_data, self.detect_odometer_corruption, self.detect_fuel_data_issues):
            scenario = scan(history, vehicle_id)
            if scenario:
                scenarios.append(scenario)
                logger.info(
                    "Data recovery scenario identified",
                    vehicle_id=vehicle_id,
                    scenario_type=scenario.scenario_type.value,
                    inconsistencies=len(scenario.data_inconsistencies),
                )
        return scenarios

    # ─── Scans (expect sorted input) ────────────────────────────────────────

    def detect_missing_trip_data(
        self, trips: Sequence[TripRecord], vehicle_id: str
    ) -> Optional[DataRecoveryScenario]:
        issues: List[DataInconsistency] = []

        serials = [t.trip_serial_number for t in trips if t.trip_serial_number]
        if len(serials) > len(set(serials)):
            duplicates = sorted(s for s, count in Counter(serials).items() if count > 1)
            issues.append(
                DataInconsistency(
                    field="trip_serial_number",
                    expected_value="unique_serials",
                    actual_value=f"duplicate_serials_found: {', '.join(duplicates)}",
                    confidence=self.DUPLICATE_SERIAL_CONFIDENCE,
                )
            )

        for prev, curr in zip(trips, trips[1:]):
            gap_days = (as_utc(curr.trip_start_date) - as_utc(prev.trip_end_date)).total_seconds() / 86400
            if gap_days > self.MAX_GAP_DAYS:
                issues.append(
                    DataInconsistency(
                        field="time_gap",
                        expected_value="regular_trip_frequency",
                        actual_value=f"{gap_days:.1f}_day_gap",
                        confidence=self.TIME_GAP_CONFIDENCE,
                        trip_id=curr.trip_id,
                    )
                )

        if not issues:
            return None

        return DataRecoveryScenario(
            scenario_id=self._scenario_id("missing-data", vehicle_id),
            scenario_type=ScenarioType.MISSING_TRIP_DATA,
            vehicle_id=vehicle_id,
            affected_trips=[t.trip_id for t in trips],
            data_inconsistencies=issues,
            recovery_options=rank_options(MISSING_DATA_OPTIONS),
            recommended_action="Review physical trip records and enter missing data",
        )

    def detect_odometer_corruption(
        self, trips: Sequence[TripRecord], vehicle_id: str
    ) -> Optional[DataRecoveryScenario]:
        issues: List[DataInconsistency] = []

        for prev, curr in zip(trips, trips[1:]):
            # Odometer must never decrease between consecutive trips
            if curr.start_km < prev.end_km:
                issues.append(
                    DataInconsistency(
                        field="odometer_reading",
                        expected_value=f">= {format_km(prev.end_km)}",
                        actual_value=curr.start_km,
                        confidence=self.ODOMETER_BACKWARDS_CONFIDENCE,
                        trip_id=curr.trip_id,
                    )
                )

            km_jump = curr.start_km - prev.end_km
            hours_between = (as_utc(curr.trip_start_date) - as_utc(prev.trip_end_date)).total_seconds() / 3600
            if km_jump > self.MAX_JUMP_KM and hours_between < self.JUMP_WINDOW_HOURS:
                issues.append(
                    DataInconsistency(
                        field="odometer_jump",
                        expected_value="gradual_increase",
                        actual_value=f"{format_km(km_jump)}km_in_{hours_between:.1f}h",
                        confidence=self.ODOMETER_JUMP_CONFIDENCE,
                        trip_id=curr.trip_id,
                    )
                )

        if not issues:
            return None

        return DataRecoveryScenario(
            scenario_id=self._scenario_id("odometer-corruption", vehicle_id),
            scenario_type=ScenarioType.CORRUPTED_ODOMETER,
            vehicle_id=vehicle_id,
            affected_trips=[t.trip_id for t in trips[1:]],
            data_inconsistencies=issues,
            recovery_options=rank_options(ODOMETER_OPTIONS),
            recommended_action="Verify current odometer reading and correct historical data",
        )

    def detect_fuel_data_issues(
        self, trips: Sequence[TripRecord], vehicle_id: str
    ) -> Optional[DataRecoveryScenario]:
        issues: List[DataInconsistency] = []

        for trip in trips:
            fuel = trip.fuel_quantity
            if (fuel is None or fuel <= 0) and trip.distance > self.ZERO_FUEL_MIN_KM:
                issues.append(
                    DataInconsistency(
                        field="fuel_quantity",
                        expected_value="> 0",
                        actual_value=fuel or 0,
                        confidence=self.ZERO_FUEL_CONFIDENCE,
                        trip_id=trip.trip_id,
                    )
                )
            if fuel is not None and fuel < 0:
                issues.append(
                    DataInconsistency(
                        field="fuel_quantity",
                        expected_value=">= 0",
                        actual_value=fuel,
                        confidence=self.NEGATIVE_FUEL_CONFIDENCE,
                        trip_id=trip.trip_id,
                    )
                )

        if not issues:
            return None

        return DataRecoveryScenario(
            scenario_id=self._scenario_id("fuel-data-issues", vehicle_id),
            scenario_type=ScenarioType.FUEL_DATA_LOSS,
            vehicle_id=vehicle_id,
            affected_trips=[t.trip_id for t in trips],
            data_inconsistencies=issues,
            recovery_options=rank_options(FUEL_OPTIONS),
            recommended_action="Review fuel receipts and update missing fuel data",
        )

    def _scenario_id(self, prefix: str, vehicle_id: str) -> str:
        epoch_ms = int(self.clock().timestamp() * 1000)
        return f"{prefix}-{vehicle_id}-{epoch_ms}"
