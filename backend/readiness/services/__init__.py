"""Service layer for the readiness engine.

Services hold the scoring, aggregation and insight rules.
"""

from readiness.services.engine import ReadinessEngine, ReadinessReport, ViewDefaults, default_view

__all__ = [
    "ReadinessEngine",
    "ReadinessReport",
    "ViewDefaults",
    "default_view",
]
