"""
Configuration helper for the service layer

Wires settings -> rule catalog -> services -> orchestrator.

Usage:
    from edge_case_engine.config_helper import create_orchestrator

    orchestrator = create_orchestrator()
    summary = orchestrator.batch_analyze(trips)
"""

import logging
from typing import Any, Dict, Mapping, Optional

from edge_case_engine.settings import EngineSettings, Settings, get_settings

logger = logging.getLogger(__name__)


def get_db_config(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Get MySQL connection config in format expected by repositories.

    Returns:
        Dict with keys: host, port, user, password, database, charset, ...
    """
    settings = settings or get_settings()
    return settings.database.get_connection_dict()


def load_catalog(engine: Optional[EngineSettings] = None):
    """
    Load the rule catalog named by EDGE_CASE_RULES_PATH, or the bundled one.

    Rules listed in EDGE_CASE_DISABLED_RULES are disabled after loading.

    Raises:
        RuleCatalogError: catalog file unreadable or invalid
    """
    from edge_case_engine.rules import RuleCatalog

    engine = engine or get_settings().engine
    if engine.rules_path:
        catalog = RuleCatalog.from_yaml(engine.rules_path, strict=engine.strict_catalog)
    else:
        catalog = RuleCatalog.default(strict=engine.strict_catalog)

    for rule_id in engine.disabled_rules:
        catalog.disable(rule_id)
    return catalog


def create_baseline_provider(settings: Optional[Settings] = None):
    """
    Build the baseline efficiency provider.

    Returns:
        BaselineCache over MySQLBaselineRepository when database baselines are
        enabled, otherwise None (efficiency checks are skipped)
    """
    from edge_case_engine.repositories import BaselineCache, MySQLBaselineRepository

    settings = settings or get_settings()
    if not settings.engine.use_database_baselines:
        return None

    repository = MySQLBaselineRepository(get_db_config(settings))
    return BaselineCache(repository, bucket_km=settings.engine.baseline_cache_bucket_km)


def create_services(
    settings: Optional[Settings] = None,
    baseline_provider: Any = None,
) -> Dict[str, Any]:
    """
    Create all service instances.

    Args:
        settings: Optional Settings. If None, uses get_settings()
        baseline_provider: Optional provider. If None, create_baseline_provider()

    Returns:
        Dict with service instances:
        {
            'catalog': RuleCatalog,
            'baseline_provider': provider or None,
            'detector': EdgeCaseDetector,
            'recovery': DataRecoveryAnalyzer,
        }
    """
    from edge_case_engine.services import DataRecoveryAnalyzer, EdgeCaseDetector

    settings = settings or get_settings()
    if baseline_provider is None:
        baseline_provider = create_baseline_provider(settings)

    return {
        "catalog": load_catalog(settings.engine),
        "baseline_provider": baseline_provider,
        "detector": EdgeCaseDetector(
            baseline_provider=baseline_provider,
            maintenance_short_trip_km=settings.engine.maintenance_short_trip_km,
        ),
        "recovery": DataRecoveryAnalyzer(
            history_limit=settings.engine.recovery_history_limit,
        ),
    }


def create_orchestrator(
    services: Optional[Dict[str, Any]] = None,
    settings: Optional[Settings] = None,
    vehicle_registry: Optional[Mapping[str, str]] = None,
):
    """
    Create EdgeCaseOrchestrator with all dependencies.

    Args:
        services: Dict from create_services() (created if None)
        settings: Optional Settings. If None, uses get_settings()
        vehicle_registry: Optional vehicle_id -> registration mapping

    Returns:
        EdgeCaseOrchestrator instance
    """
    from edge_case_engine.orchestrators import EdgeCaseOrchestrator, OrchestratorConfig

    settings = settings or get_settings()
    if services is None:
        services = create_services(settings)

    config = OrchestratorConfig(
        recent_limit=settings.engine.recent_detections_limit,
        max_workers=settings.engine.batch_max_workers,
        history_limit=settings.engine.recovery_history_limit,
        maintenance_short_trip_km=settings.engine.maintenance_short_trip_km,
    )

    return EdgeCaseOrchestrator(
        catalog=services["catalog"],
        detector=services["detector"],
        recovery_analyzer=services["recovery"],
        vehicle_registry=vehicle_registry,
        config=config,
    )


# Quick setup function for convenience
def setup_engine(
    settings: Optional[Settings] = None,
    vehicle_registry: Optional[Mapping[str, str]] = None,
):
    """
    One-liner to set up logging, services and orchestrator from settings.

    Returns:
        Tuple of (services, orchestrator)

    Example:
        services, orchestrator = setup_engine()
        summary = orchestrator.batch_analyze(trips)
    """
    from edge_case_engine.logging_config import setup_logging

    settings = settings or get_settings()
    setup_logging(level=settings.logging.level, json_format=settings.logging.json_format)

    for warning in settings.validate():
        logger.warning(warning)

    services = create_services(settings)
    orchestrator = create_orchestrator(services, settings, vehicle_registry=vehicle_registry)
    return services, orchestrator
