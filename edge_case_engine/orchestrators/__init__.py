"""Orchestration layer."""

from .edge_case_orchestrator import EdgeCaseOrchestrator, OrchestratorConfig

__all__ = ["EdgeCaseOrchestrator", "OrchestratorConfig"]
