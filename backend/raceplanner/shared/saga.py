"""
Saga runner.

Runs an ordered list of steps that span independent stores (object storage
and the relational store) with no shared transaction. Each step may register a
compensating action. When step ``n`` fails, compensations of steps
``n-1 ... 0`` run in strict reverse order, so the first side effect is always
the last one undone.

Usage:
    saga = Saga("catalog_ingest")
    saga.step("upload_gpx", upload, compensate=delete_blob,
              failure_message="Unable to upload GPX file.")
    saga.step("persist_race", persist, failure_message="Unable to update race.")
    results = await saga.run()
    race = results["persist_race"]
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from raceplanner.stores.base import StoreError
from .errors import DependencyError

logger = logging.getLogger(__name__)


Action = Callable[[], Union[Any, Awaitable[Any]]]
Compensation = Callable[[], Awaitable[None]]


@dataclass
class SagaStep:
    """One forward action and its optional undo."""
    name: str
    action: Action
    compensate: Optional[Compensation] = None
    failure_message: Optional[str] = None


@dataclass
class IntegrityViolation:
    """A compensation that itself failed, leaving an orphaned side effect."""
    step: str
    error: BaseException


@dataclass
class Saga:
    """Ordered steps executed sequentially with reverse-order compensation."""

    name: str
    steps: list[SagaStep] = field(default_factory=list)
    results: dict[str, Any] = field(default_factory=dict)
    compensated: list[str] = field(default_factory=list)
    integrity_violations: list[IntegrityViolation] = field(default_factory=list)

    def step(
        self,
        name: str,
        action: Action,
        compensate: Optional[Compensation] = None,
        failure_message: Optional[str] = None,
    ) -> "Saga":
        self.steps.append(SagaStep(name, action, compensate, failure_message))
        return self

    async def run(self) -> dict[str, Any]:
        """
        Execute every step in order.

        Returns:
            Mapping of step name to the value its action returned

        Raises:
            DependencyError: A store call failed (original error chained)
            RacePlannerError: Domain errors raised by a step, unchanged
        """
        completed: list[SagaStep] = []

        for step in self.steps:
            try:
                result = step.action()
                if inspect.isawaitable(result):
                    result = await result
            except (Exception, asyncio.CancelledError) as exc:
                logger.error(f"Saga {self.name}: step '{step.name}' failed: {exc!r}")
                # Compensation must finish even if the request is being cancelled
                await asyncio.shield(self._compensate(completed))
                if isinstance(exc, StoreError):
                    raise DependencyError(step.failure_message) from exc
                raise

            self.results[step.name] = result
            completed.append(step)

        return self.results

    async def _compensate(self, completed: list[SagaStep]) -> None:
        for step in reversed(completed):
            if step.compensate is None:
                continue
            try:
                await step.compensate()
                self.compensated.append(step.name)
                logger.info(f"Saga {self.name}: compensated '{step.name}'")
            except Exception as exc:
                self.integrity_violations.append(IntegrityViolation(step.name, exc))
                logger.error(
                    f"Saga {self.name}: integrity violation, "
                    f"compensation for '{step.name}' failed: {exc!r}"
                )
