"""Ordered step execution.

Runs steps strictly one after another against a StoryClient. Every step
produces exactly one StepResult; a failed step never stops the run. A step
whose needed state was never produced fails its own precondition check and
sends nothing.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from .client import ResponseRecord, StoryClient
from .errors import MISSING_FIELD, HarnessError, PreconditionError, StoryClientError
from .shared.logging import get_logger
from .state import ScenarioState
from .steps import Step, validate_chain
from .validation import validate_response

logger = get_logger(__name__)


class StepStatus(str, Enum):
    """Outcome of one step."""

    PASSED = "passed"
    FAILED = "failed"
    PRECONDITION_FAILED = "precondition_failed"
    ERROR = "error"


@dataclass
class StepResult:
    """Recorded outcome of one step."""

    name: str
    order: int
    status: StepStatus
    method: str
    path: str
    expected_status: int
    actual_status: int | None = None
    message: str = ""
    duration_ms: float = 0.0
    error: dict[str, Any] | None = None

    @property
    def passed(self) -> bool:
        return self.status == StepStatus.PASSED

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "order": self.order,
            "status": self.status.value,
            "method": self.method,
            "path": self.path,
            "expected_status": self.expected_status,
            "actual_status": self.actual_status,
            "message": self.message,
            "duration_ms": round(self.duration_ms, 1),
            "error": self.error,
        }


@dataclass
class ScenarioReport:
    """One outcome per step, in execution order."""

    results: list[StepResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: float = 0.0
    state: dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def failed(self) -> list[StepResult]:
        return [r for r in self.results if not r.passed]

    def pattern(self) -> tuple[tuple[str, StepStatus], ...]:
        """Step names and statuses, for comparing runs."""
        return tuple((r.name, r.status) for r in self.results)

    def get(self, name: str) -> StepResult | None:
        for result in self.results:
            if result.name == name:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "started_at": self.started_at.isoformat(),
            "duration_ms": round(self.duration_ms, 1),
            "total": len(self.results),
            "failed": len(self.failed),
            "steps": [r.to_dict() for r in self.results],
        }


class ScenarioExecutor:
    """Executes an ordered chain of steps.

    Each run gets its own ScenarioState unless one is passed in, so the same
    executor can run the chain repeatedly within one session.
    """

    def __init__(
        self,
        client: StoryClient,
        steps: list[Step],
        on_step: Callable[[StepResult], None] | None = None,
    ):
        """Initialize executor.

        Args:
            client: Authenticated client, already entered
            steps: Step definitions; validated and sorted here
            on_step: Optional callback called with each StepResult

        Raises:
            ScenarioDefinitionError: If the steps do not form a valid chain
        """
        self._client = client
        self._steps = validate_chain(steps)
        self._on_step = on_step

    @property
    def steps(self) -> list[Step]:
        return list(self._steps)

    def run(self, state: ScenarioState | None = None) -> ScenarioReport:
        """Run every step once, in order.

        Args:
            state: Scenario state to thread through the steps

        Returns:
            ScenarioReport with one result per step
        """
        state = state if state is not None else ScenarioState()
        report = ScenarioReport()
        start = time.monotonic()

        for step in self._steps:
            result = self.run_step(step, state)
            report.results.append(result)
            if self._on_step:
                self._on_step(result)

        report.duration_ms = (time.monotonic() - start) * 1000
        report.state = state.snapshot()
        logger.info(
            "scenario_finished",
            total=len(report.results),
            failed=len(report.failed),
            duration_ms=round(report.duration_ms, 1),
        )
        return report

    def run_step(self, step: Step, state: ScenarioState) -> StepResult:
        """Run a single step and record its outcome."""
        log = logger.bind(step=step.name, order=step.order)
        log.debug("step_started")
        start = time.monotonic()

        def finish(status: StepStatus, path: str, **kwargs: Any) -> StepResult:
            result = StepResult(
                name=step.name,
                order=step.order,
                status=status,
                method=step.request.method,
                path=path,
                expected_status=step.expected_status,
                duration_ms=(time.monotonic() - start) * 1000,
                **kwargs,
            )
            log.info(
                "step_finished",
                status=status.value,
                actual_status=result.actual_status,
                message=result.message or None,
            )
            return result

        try:
            path, body = step.resolve(state)
        except PreconditionError as e:
            log.warning("precondition_failed", key=e.key)
            return finish(
                StepStatus.PRECONDITION_FAILED,
                step.request.path,
                message=e.message,
                error=e.to_dict(),
            )

        try:
            response = self._client.send(step.request.method, path, json=body)
        except StoryClientError as e:
            return finish(StepStatus.ERROR, path, message=e.message, error=e.to_dict())

        outcome = validate_response(response, step.expected_status, step.assertion)
        if not outcome.passed:
            return finish(
                StepStatus.FAILED,
                path,
                actual_status=response.status_code,
                message=outcome.message,
            )

        try:
            self._capture(step, response, outcome.parsed_body, state)
        except HarnessError as e:
            return finish(
                StepStatus.FAILED,
                path,
                actual_status=response.status_code,
                message=e.message,
                error=e.to_dict(),
            )

        return finish(StepStatus.PASSED, path, actual_status=response.status_code)

    def _capture(
        self,
        step: Step,
        response: ResponseRecord,
        parsed_body: Any,
        state: ScenarioState,
    ) -> None:
        """Write produced keys into state from the response body."""
        if not step.produces:
            return

        payload = parsed_body if parsed_body is not None else response.json()
        for key, field_name in step.produces.items():
            value = payload.get(field_name) if isinstance(payload, dict) else None
            if value is None or value == "":
                raise HarnessError(
                    code=MISSING_FIELD,
                    message=f"Response is missing '{field_name}' needed for '{key}'",
                    data={"field": field_name, "key": key},
                )
            state.set(key, str(value), writer=step.name)
