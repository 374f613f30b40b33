"""
Orchestration package for coordinating migration pipeline phases.

This package provides the orchestration layer that sequences all migration
phases: Registry → Convert → Export → Report.
"""

from .migration_orchestrator import MigrationOrchestrator
from .migration_report import MigrationReport

__all__ = [
    'MigrationOrchestrator',
    'MigrationReport'
]
