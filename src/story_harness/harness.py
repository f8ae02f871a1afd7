"""Run orchestration: login, scoped client, ordered steps, teardown.

The authenticated client lives for the whole run and is closed exactly once
when the run ends, whichever steps passed or failed.
"""

from dataclasses import dataclass, field
from typing import Any, Callable

import httpx

from .client import StoryClient
from .config import HarnessConfig
from .credentials import Credential, CredentialProvider
from .executor import ScenarioExecutor, ScenarioReport, StepResult
from .shared.logging import get_logger
from .steps import Step, build_story_scenario, validate_chain

logger = get_logger(__name__)


@dataclass
class HarnessRun:
    """All rounds of one harness run."""

    base_url: str
    credential: Credential
    rounds: list[ScenarioReport] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return bool(self.rounds) and all(r.passed for r in self.rounds)

    @property
    def consistent(self) -> bool:
        """True when every round produced the same pass/fail pattern."""
        if not self.rounds:
            return True
        first = self.rounds[0].pattern()
        return all(r.pattern() == first for r in self.rounds[1:])

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_url": self.base_url,
            "credential": self.credential.status.value,
            "passed": self.passed,
            "consistent": self.consistent,
            "rounds": [r.to_dict() for r in self.rounds],
        }


def run_harness(
    config: HarnessConfig,
    steps: list[Step] | None = None,
    repeat: int = 1,
    include_redelete: bool = False,
    http_client: httpx.Client | None = None,
    on_step: Callable[[StepResult], None] | None = None,
) -> HarnessRun:
    """Log in once and run the scenario ``repeat`` times in one session.

    Args:
        config: Target URL, credentials and transport settings
        steps: Step definitions (defaults to the story lifecycle scenario)
        repeat: Number of rounds; each round starts with fresh state
        include_redelete: Add the delete-again step to the default scenario
        http_client: Pre-built client used for login and requests (tests)
        on_step: Optional callback called with each StepResult

    Returns:
        HarnessRun with one ScenarioReport per round

    Raises:
        ValueError: If credentials are missing or repeat < 1
        ScenarioDefinitionError: If the steps do not form a valid chain
        StoryClientError: If the login endpoint cannot be reached
    """
    if not config.username or not config.password:
        raise ValueError("Username and password are required")
    if repeat < 1:
        raise ValueError("repeat must be at least 1")

    # Reject a broken chain before any traffic
    steps = validate_chain(steps) if steps is not None else build_story_scenario(include_redelete)

    provider = CredentialProvider(
        config.base_url,
        timeout=config.timeout,
        insecure=config.insecure,
        http_client=http_client,
    )
    credential = provider.acquire_token(config.username, config.password)

    run = HarnessRun(base_url=config.base_url, credential=credential)

    with StoryClient(
        config.base_url,
        credential.token,
        timeout=config.timeout,
        insecure=config.insecure,
        http_client=http_client,
    ) as client:
        executor = ScenarioExecutor(client, steps, on_step=on_step)
        for round_number in range(1, repeat + 1):
            logger.info("round_started", round=round_number, of=repeat)
            run.rounds.append(executor.run())

    logger.info(
        "harness_finished",
        base_url=config.base_url,
        rounds=len(run.rounds),
        passed=run.passed,
        consistent=run.consistent,
    )
    return run
