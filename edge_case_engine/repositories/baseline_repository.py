"""
Baseline Repository - fuel efficiency baselines per vehicle

The engine only ever asks one question of the outside world: "what is this
vehicle's historical km/l?". Absence is a valid answer (None), and a failing
lookup degrades to None instead of raising.
"""

import logging
import threading
from typing import Any, Dict, Mapping, Optional, Tuple

import pymysql
from pymysql import cursors

logger = logging.getLogger(__name__)


class InMemoryBaselineRepository:
    """Baselines supplied up front by the caller, keyed by vehicle id."""

    def __init__(self, baselines: Optional[Mapping[str, float]] = None):
        self._baselines: Dict[str, float] = dict(baselines or {})

    def set_baseline(self, vehicle_id: str, baseline_kmpl: float) -> None:
        self._baselines[vehicle_id] = baseline_kmpl

    def get_baseline_efficiency(
        self, vehicle_id: str, odometer_km: Optional[float] = None
    ) -> Optional[float]:
        return self._baselines.get(vehicle_id)


class MySQLBaselineRepository:
    """Reads fuel_efficiency_baselines.baseline_kmpl."""

    def __init__(self, db_config: Dict[str, Any]):
        self.db_config = db_config
        logger.info(f"MySQLBaselineRepository initialized for DB: {db_config.get('database')}")

    def _get_connection(self):
        """Get database connection."""
        return pymysql.connect(**self.db_config, cursorclass=cursors.DictCursor)

    def get_baseline_efficiency(
        self, vehicle_id: str, odometer_km: Optional[float] = None
    ) -> Optional[float]:
        try:
            conn = self._get_connection()
        except pymysql.Error as e:
            logger.warning(f"Baseline lookup unavailable for {vehicle_id}: {e}")
            return None

        try:
            with conn.cursor() as cursor:
                cursor.execute(
                    """
                    SELECT baseline_kmpl
                    FROM fuel_efficiency_baselines
                    WHERE vehicle_id = %s
                    LIMIT 1
                """,
                    (vehicle_id,),
                )
                row = cursor.fetchone()
                if not row or row.get("baseline_kmpl") is None:
                    logger.debug(f"No baseline for vehicle {vehicle_id}")
                    return None
                return float(row["baseline_kmpl"])
        except (pymysql.Error, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Baseline lookup failed for {vehicle_id}: {e}")
            return None
        finally:
            conn.close()


class BaselineCache:
    """
    Caller-owned cache in front of any baseline provider.

    Keyed by (vehicle_id, odometer bucket) so a vehicle's baseline is looked
    up again once it has covered bucket_km more distance. Misses (None) are
    cached too. Nothing here is process-wide; drop the instance to reset.
    """

    def __init__(self, provider: Any, bucket_km: float = 5000.0):
        self.provider = provider
        self.bucket_km = bucket_km
        self._entries: Dict[Tuple[str, Optional[int]], Optional[float]] = {}
        self.hits = 0
        self.misses = 0
        self._lock = threading.Lock()

    def _key(self, vehicle_id: str, odometer_km: Optional[float]) -> Tuple[str, Optional[int]]:
        bucket = int(odometer_km // self.bucket_km) if odometer_km is not None else None
        return vehicle_id, bucket

    def get_baseline_efficiency(
        self, vehicle_id: str, odometer_km: Optional[float] = None
    ) -> Optional[float]:
        key = self._key(vehicle_id, odometer_km)
        with self._lock:
            if key in self._entries:
                self.hits += 1
                return self._entries[key]
            self.misses += 1

        value = self.provider.get_baseline_efficiency(vehicle_id, odometer_km=odometer_km)
        with self._lock:
            self._entries[key] = value
        return value

    def invalidate(self, vehicle_id: Optional[str] = None) -> int:
        """Drop cached entries for one vehicle, or all. Returns entries removed."""
        with self._lock:
            if vehicle_id is None:
                removed = len(self._entries)
                self._entries.clear()
                return removed
            keys = [k for k in self._entries if k[0] == vehicle_id]
            for k in keys:
                del self._entries[k]
            return len(keys)

    def __len__(self) -> int:
        return len(self._entries)
