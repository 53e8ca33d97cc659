"""Outcome aggregation: folds a pipeline's unit results into a run state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from taskgate import ui
from taskgate.errors import PipelineError
from taskgate.pipeline.size import NullSizeReporter, SizeReporter
from taskgate.pipeline.types import PipelineOutcome
from taskgate.state import Category

if TYPE_CHECKING:
    from rich.console import Console

    from taskgate.pipeline.adapter import Pipeline
    from taskgate.state import RunState

logger = logging.getLogger(__name__)


class OutcomeAggregator:
    """Consumes pipelines on behalf of one task invocation."""

    def __init__(
        self,
        state: RunState,
        console: Console | None = None,
        sizes: SizeReporter | NullSizeReporter | None = None,
    ) -> None:
        self.state = state
        self.console = console or ui.console
        self.sizes = sizes or NullSizeReporter()

    def consume(self, pipeline: Pipeline) -> PipelineOutcome:
        """Drain ``pipeline`` and decide its verdict once it has ended.

        A pipeline-level failure marks the run failed at once and stops
        consumption; failed units are only counted.
        """
        units = 0
        try:
            for result in pipeline:
                self.state.record_unit_result(result.category, result)
                units += 1
        except PipelineError as exc:
            logger.debug("pipeline %s aborted after %d units", pipeline.title, units)
            self.state.mark_failed()
            ui.pipeline_failure(self.console, pipeline.title, exc.message)
            if exc.category is Category.STYLE:
                ui.style_errors_found(self.console)
            return PipelineOutcome(
                title=pipeline.title,
                failed=True,
                units=units,
                counts=self._counts(pipeline),
                error=exc.message,
            )

        failed = self.state.fold_verdicts(set(pipeline.categories))
        counts = self._counts(pipeline)
        if failed:
            self._report_failure(pipeline, counts)
        else:
            ui.task_passed(self.console, pipeline.title)
        self.sizes.report(pipeline.title, pipeline.sources)
        return PipelineOutcome(title=pipeline.title, failed=failed, units=units, counts=counts)

    def _counts(self, pipeline: Pipeline) -> dict[str, int]:
        return {category.value: self.state.error_counts.get(category, 0) for category in pipeline.categories}

    def _report_failure(self, pipeline: Pipeline, counts: dict[str, int]) -> None:
        failing = {name: count for name, count in counts.items() if count}
        if len(pipeline.categories) == 1:
            if pipeline.category is Category.STYLE:
                ui.style_errors_found(self.console)
            else:
                ui.errors_found(self.console, counts[pipeline.category.value])
            return
        for name, count in failing.items():
            ui.errors_found(self.console, count, f"{name} errors")
