"""
Edge Case Orchestrator

Thin orchestration layer over the detection and recovery services:

- analyze_trip: every enabled catalog rule against one trip
- batch_analyze: many trips pooled into an EdgeCaseSummary
- analyze_data_recovery / analyze_fleet_recovery: integrity scans per vehicle

Malformed records are skipped with a warning and never abort a batch.
"""

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from edge_case_engine.models.edge_case_models import (
    DataRecoveryScenario,
    EdgeCaseDetection,
    EdgeCaseSummary,
)
from edge_case_engine.models.trip_models import TripRecord
from edge_case_engine.rules.catalog import RuleCatalog
from edge_case_engine.services.condition_evaluators import (
    DEFAULT_MAINTENANCE_SHORT_TRIP_KM,
    BaselineProvider,
)
from edge_case_engine.services.data_recovery_analyzer import DataRecoveryAnalyzer
from edge_case_engine.services.edge_case_detector import EdgeCaseDetector

logger = logging.getLogger(__name__)

TripInput = Union[TripRecord, Mapping[str, Any]]


@dataclass
class OrchestratorConfig:
    """Configuration for EdgeCaseOrchestrator."""

    recent_limit: int = 20
    max_workers: int = 1
    history_limit: Optional[int] = None
    maintenance_short_trip_km: float = DEFAULT_MAINTENANCE_SHORT_TRIP_KM


class EdgeCaseOrchestrator:
    """
    Runs the rule catalog over trips and the integrity scans over histories.

    Services are injected for testability; anything not supplied is built
    from defaults (bundled catalog, default evaluators, no baseline provider).
    """

    VERSION = "1.0.0"

    def __init__(
        self,
        catalog: Optional[RuleCatalog] = None,
        detector: Optional[EdgeCaseDetector] = None,
        recovery_analyzer: Optional[DataRecoveryAnalyzer] = None,
        baseline_provider: Optional[BaselineProvider] = None,
        vehicle_registry: Optional[Mapping[str, str]] = None,
        config: Optional[OrchestratorConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize EdgeCaseOrchestrator with dependencies.

        Args:
            catalog: Rule catalog (bundled defaults if None)
            detector: EdgeCaseDetector (built with baseline_provider if None)
            recovery_analyzer: DataRecoveryAnalyzer (built from config if None)
            baseline_provider: Baseline efficiency lookup for the fuel checks
            vehicle_registry: vehicle_id -> registration, used when a trip has none
            config: OrchestratorConfig (defaults if None)
            clock: Time source shared by the default services
        """
        self.config = config or OrchestratorConfig()
        self.catalog = catalog if catalog is not None else RuleCatalog.default()
        self.detector = detector or EdgeCaseDetector(
            baseline_provider=baseline_provider,
            maintenance_short_trip_km=self.config.maintenance_short_trip_km,
            clock=clock,
        )
        self.recovery_analyzer = recovery_analyzer or DataRecoveryAnalyzer(
            history_limit=self.config.history_limit,
            clock=clock,
        )
        self.vehicle_registry = dict(vehicle_registry or {})

        logger.info(
            f"EdgeCaseOrchestrator v{self.VERSION} initialized with {len(self.catalog)} rules"
        )

    # ═══════════════════════════════════════════════════════════════════════
    # DETECTION
    # ═══════════════════════════════════════════════════════════════════════

    def analyze_trip(self, trip: TripInput) -> List[EdgeCaseDetection]:
        """
        Apply every enabled rule, in catalog order, to one trip.

        Returns:
            Detections (possibly several case types); empty when the record is
            invalid or nothing was found
        """
        record = self._coerce_trip(trip)
        if record is None:
            return []
        return self._detect(record)

    def batch_analyze(
        self,
        trips: Iterable[TripInput],
        recent_limit: Optional[int] = None,
        max_workers: Optional[int] = None,
    ) -> EdgeCaseSummary:
        """
        Analyze a window of trips and aggregate the results.

        Args:
            trips: TripRecords or raw mappings, e.g. the caller's recent trips
            recent_limit: Cap on recent_detections (config default if None)
            max_workers: Thread count; 1 runs sequentially

        Returns:
            EdgeCaseSummary with counts by type and severity, pending reviews
            and the most recent detections first
        """
        recent_limit = self.config.recent_limit if recent_limit is None else recent_limit
        max_workers = self.config.max_workers if max_workers is None else max_workers

        records: List[TripRecord] = []
        skipped = 0
        for trip in trips:
            record = self._coerce_trip(trip)
            if record is None:
                skipped += 1
            else:
                records.append(record)

        if max_workers > 1 and len(records) > 1:
            with ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="edge_case"
            ) as executor:
                results = list(executor.map(self._detect_safely, records))
        else:
            results = [self._detect_safely(record) for record in records]

        detections: List[EdgeCaseDetection] = []
        for result in results:
            if result is None:
                skipped += 1
            else:
                detections.extend(result)

        summary = self._summarize(detections, recent_limit)
        summary.trips_analyzed = len(records) - sum(1 for r in results if r is None)
        summary.trips_skipped = skipped

        logger.info(
            f"Batch analysis complete: {summary.total_cases_detected} cases from "
            f"{summary.trips_analyzed} trips ({summary.trips_skipped} skipped), "
            f"{summary.pending_reviews} pending review"
        )
        return summary

    # ═══════════════════════════════════════════════════════════════════════
    # DATA RECOVERY
    # ═══════════════════════════════════════════════════════════════════════

    def analyze_data_recovery(
        self, vehicle_id: str, trips: Iterable[TripInput]
    ) -> List[DataRecoveryScenario]:
        """
        Run the integrity scans over one vehicle's trip history.

        Invalid records and trips belonging to another vehicle are dropped
        before the history is sorted and trimmed.
        """
        history = []
        for trip in trips:
            record = self._coerce_trip(trip)
            if record is None:
                continue
            if record.vehicle_id != vehicle_id:
                logger.warning(
                    f"Trip {record.trip_id} belongs to {record.vehicle_id}, not {vehicle_id} - ignored"
                )
                continue
            history.append(record)

        scenarios = self.recovery_analyzer.analyze(vehicle_id, history)
        if scenarios:
            logger.info(f"{len(scenarios)} recovery scenarios for vehicle {vehicle_id}")
        return scenarios

    def analyze_fleet_recovery(
        self, histories: Mapping[str, Sequence[TripInput]]
    ) -> Dict[str, List[DataRecoveryScenario]]:
        """
        Run the integrity scans for each vehicle.

        Returns:
            {vehicle_id: scenarios}, only for vehicles with findings
        """
        results: Dict[str, List[DataRecoveryScenario]] = {}
        for vehicle_id, trips in histories.items():
            scenarios = self.analyze_data_recovery(vehicle_id, trips)
            if scenarios:
                results[vehicle_id] = scenarios
        logger.info(
            f"Fleet recovery analysis: {len(results)}/{len(histories)} vehicles need attention"
        )
        return results

    # ═══════════════════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════════════════

    def _coerce_trip(self, trip: TripInput) -> Optional[TripRecord]:
        if isinstance(trip, TripRecord):
            return trip
        try:
            return TripRecord.model_validate(trip)
        except ValidationError as e:
            trip_id = trip.get("trip_id", trip.get("id")) if isinstance(trip, Mapping) else None
            logger.warning(
                f"Skipping invalid trip {trip_id}: {e.error_count()} validation errors"
            )
            return None

    def _detect(self, record: TripRecord) -> List[EdgeCaseDetection]:
        registration = record.vehicle_registration or self.vehicle_registry.get(record.vehicle_id)
        return self.detector.detect(record, self.catalog.enabled_rules(), registration)

    def _detect_safely(self, record: TripRecord) -> Optional[List[EdgeCaseDetection]]:
        """Detect for one trip of a batch; None marks a failed trip."""
        try:
            return self._detect(record)
        except Exception:
            logger.exception(f"Edge case analysis failed for trip {record.trip_id}")
            return None

    @staticmethod
    def _summarize(detections: List[EdgeCaseDetection], recent_limit: int) -> EdgeCaseSummary:
        by_type = Counter(d.case_type.value for d in detections)
        by_severity = Counter(d.severity.value for d in detections)
        recent = sorted(detections, key=lambda d: d.detected_at, reverse=True)

        return EdgeCaseSummary(
            total_cases_detected=len(detections),
            cases_by_type=dict(by_type),
            cases_by_severity=dict(by_severity),
            pending_reviews=sum(1 for d in detections if d.is_pending_review),
            recent_detections=recent[: max(recent_limit, 0)],
            all_detections=detections,
        )
