"""Pipeline adapter and outcome aggregation."""

from taskgate.pipeline.adapter import Pipeline, expand_patterns, run_command
from taskgate.pipeline.aggregator import OutcomeAggregator
from taskgate.pipeline.types import PipelineOutcome, UnitResult

__all__ = [
    "OutcomeAggregator",
    "Pipeline",
    "PipelineOutcome",
    "UnitResult",
    "expand_patterns",
    "run_command",
]
