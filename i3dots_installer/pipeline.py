from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import List, Protocol, Sequence

from .context import InstallContext

logger = logging.getLogger(__name__)


class Severity(enum.Enum):
    FATAL = "fatal"
    RECOVERABLE = "recoverable"


class Step(Protocol):
    """A single idempotent step."""

    step_id: str
    severity: Severity

    def run(self, ctx: InstallContext) -> None:
        ...


@dataclass
class PipelineResult:
    ran_steps: List[str] = field(default_factory=list)
    failed_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_steps


def run_pipeline(
    *,
    ctx: InstallContext,
    steps: Sequence[Step],
    skip: Sequence[str] = (),
) -> PipelineResult:
    """Run steps in order.

    A recoverable step that raises is logged and recorded; the run goes on.
    A fatal step that raises propagates and ends the run.
    """

    result = PipelineResult()

    for step in steps:
        if step.step_id in skip:
            logger.info("Skipping step %s", step.step_id)
            result.skipped_steps.append(step.step_id)
            continue

        logger.info("Running step %s", step.step_id)
        try:
            step.run(ctx)
        except Exception as e:
            if step.severity is Severity.FATAL:
                logger.error("Step %s failed: %s", step.step_id, e)
                raise
            logger.warning("Step %s failed (continuing): %s", step.step_id, e)
            result.failed_steps.append(step.step_id)
        else:
            result.ran_steps.append(step.step_id)

    return result
