"""
Multi-step operations with compensation.

A saga runs its steps in order. When a required step fails, the compensations
of the steps that already completed run in reverse and the error propagates.
A failing best-effort step is recorded as an :class:`IntegrityWarning` on the
result and logged; later steps still run.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Self

from stencil_core import IntegrityWarning

logger = logging.getLogger(__name__)

AsyncAction = Callable[[], Awaitable[Any]]


@dataclass
class SagaStep:
    name: str
    action: AsyncAction
    compensate: AsyncAction | None = None
    required: bool = True


@dataclass
class SagaResult:
    completed: list[str] = field(default_factory=list)
    warnings: list[IntegrityWarning] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.warnings


class Saga:
    """
    Example:
        >>> result = await (
        ...     Saga("remove Task")
        ...     .step("drop table", drop_table)
        ...     .step("delete definition", delete_definition, required=False)
        ...     .run()
        ... )
    """

    def __init__(self, name: str):
        self.name = name
        self.steps: list[SagaStep] = []

    def step(
        self,
        name: str,
        action: AsyncAction,
        *,
        compensate: AsyncAction | None = None,
        required: bool = True,
    ) -> Self:
        self.steps.append(SagaStep(name, action, compensate, required))
        return self

    async def run(self) -> SagaResult:
        result = SagaResult()
        done: list[SagaStep] = []
        for step in self.steps:
            try:
                await step.action()
            except Exception as exc:
                if step.required:
                    logger.error(
                        "%s: required step '%s' failed: %s", self.name, step.name, exc
                    )
                    await self._compensate(done)
                    raise
                warning = IntegrityWarning(f"{self.name}: {step.name} failed: {exc}")
                logger.warning("%s", warning)
                result.warnings.append(warning)
                continue
            done.append(step)
            result.completed.append(step.name)
        return result

    async def _compensate(self, done: list[SagaStep]) -> None:
        for step in reversed(done):
            if step.compensate is None:
                continue
            try:
                await step.compensate()
            except Exception:
                logger.exception(
                    "%s: compensation for '%s' failed", self.name, step.name
                )
