"""Step definitions and the canonical story lifecycle scenario.

A step is a named, ordered request template. It declares the state keys it
needs (filled into its path with ``str.format``) and the state keys it
produces (read from the JSON response once the response validates). The
chain is checked up front: order indexes are unique, names are unique, each
key has one writer, and every needed key is produced by an earlier step.
"""

import copy
import string
from dataclasses import dataclass, field
from typing import Any

from .client import CREATE_PATH, DELETE_PATH, EDIT_PATH, LIST_PATH
from .errors import ScenarioDefinitionError
from .state import STORY_ID, ScenarioState
from .validation import BodyAssertion, ContainsText, JsonArrayNotEmpty, JsonFieldPresent

# Request data
NEW_STORY = {"title": "New story2", "description": "Test story description"}
UPDATED_STORY = {
    "title": "Updated Story Title",
    "description": "Updated Story Description",
    "url": "",
}
INCOMPLETE_STORY = {"url": ""}
UNKNOWN_STORY_EDIT = {"title": "Updated Story", "description": "Updated Description", "url": ""}

# Ids the service is known not to have
MISSING_STORY_ID = "4444"
MALFORMED_STORY_ID = "non-existing-id"

# Response fields
STORY_ID_FIELD = "storyId"

NOT_FOUND_MESSAGES = ("No spoilers", "not found")
CANNOT_DELETE_MESSAGES = ("Unable to delete this story spoiler!", "Unable to delete", "cannot delete")


@dataclass(frozen=True)
class RequestTemplate:
    """HTTP request with ``{key}`` placeholders in the path."""

    method: str
    path: str
    body: dict[str, Any] | None = None

    def placeholders(self) -> tuple[str, ...]:
        """State keys referenced in the path."""
        return tuple(
            name for _, name, _, _ in string.Formatter().parse(self.path) if name
        )


@dataclass(frozen=True)
class Step:
    """One named, ordered unit of the scenario."""

    name: str
    order: int
    request: RequestTemplate
    expected_status: int
    assertion: BodyAssertion | None = None
    needs: tuple[str, ...] = ()
    # state key -> response field
    produces: dict[str, str] = field(default_factory=dict)
    description: str = ""

    def resolve(self, state: ScenarioState) -> tuple[str, dict[str, Any] | None]:
        """Fill the request template from scenario state.

        Raises:
            PreconditionError: If a needed key is absent
        """
        values = {key: state.require(key, reader=self.name) for key in self.needs}
        path = self.request.path.format(**values)
        body = copy.deepcopy(self.request.body) if self.request.body is not None else None
        return path, body


def validate_chain(steps: list[Step]) -> list[Step]:
    """Check a list of steps forms a valid ordered chain.

    Returns:
        Steps sorted by order index

    Raises:
        ScenarioDefinitionError: On duplicate orders or names, keys with more
            than one writer, or needs not produced by an earlier step
    """
    ordered = sorted(steps, key=lambda s: s.order)
    seen_orders: dict[int, str] = {}
    seen_names: set[str] = set()
    writers: dict[str, str] = {}

    for step in ordered:
        if step.order in seen_orders:
            raise ScenarioDefinitionError(
                message=(
                    f"Steps '{seen_orders[step.order]}' and '{step.name}' "
                    f"share order index {step.order}"
                ),
                data={"order": step.order},
            )
        if step.name in seen_names:
            raise ScenarioDefinitionError(
                message=f"Duplicate step name '{step.name}'",
                data={"name": step.name},
            )

        undeclared = set(step.request.placeholders()) - set(step.needs)
        if undeclared:
            raise ScenarioDefinitionError(
                message=f"Step '{step.name}' uses undeclared keys: {', '.join(sorted(undeclared))}",
                data={"step": step.name, "keys": sorted(undeclared)},
            )

        for key in step.needs:
            if key not in writers:
                raise ScenarioDefinitionError(
                    message=f"Step '{step.name}' needs '{key}', which no earlier step produces",
                    data={"step": step.name, "key": key},
                )

        for key in step.produces:
            if key in writers:
                raise ScenarioDefinitionError(
                    message=f"Steps '{writers[key]}' and '{step.name}' both produce '{key}'",
                    data={"key": key},
                )
            writers[key] = step.name

        seen_orders[step.order] = step.name
        seen_names.add(step.name)

    return ordered


def build_story_scenario(include_redelete: bool = False) -> list[Step]:
    """Build the story lifecycle scenario.

    Args:
        include_redelete: Append a step deleting the captured id a second
            time, which must fail with 400

    Returns:
        Validated steps in execution order
    """
    steps = [
        Step(
            name="create_story",
            order=1,
            request=RequestTemplate("POST", CREATE_PATH, NEW_STORY),
            expected_status=201,
            assertion=JsonFieldPresent(STORY_ID_FIELD),
            produces={STORY_ID: STORY_ID_FIELD},
            description="Create story with title and description",
        ),
        Step(
            name="edit_story",
            order=2,
            request=RequestTemplate("PUT", EDIT_PATH, UPDATED_STORY),
            expected_status=200,
            needs=(STORY_ID,),
            description="Edit the created story",
        ),
        Step(
            name="list_stories",
            order=3,
            request=RequestTemplate("GET", LIST_PATH),
            expected_status=200,
            assertion=JsonArrayNotEmpty(),
            description="List stories, expect a non-empty array",
        ),
        Step(
            name="delete_story",
            order=4,
            request=RequestTemplate("DELETE", DELETE_PATH),
            expected_status=200,
            needs=(STORY_ID,),
            description="Delete the created story",
        ),
        Step(
            name="create_story_missing_fields",
            order=5,
            request=RequestTemplate("POST", CREATE_PATH, INCOMPLETE_STORY),
            expected_status=400,
            description="Create story without title and description",
        ),
        Step(
            name="edit_missing_story",
            order=6,
            request=RequestTemplate(
                "PUT", EDIT_PATH.format(story_id=MISSING_STORY_ID), UNKNOWN_STORY_EDIT
            ),
            expected_status=404,
            assertion=ContainsText(*NOT_FOUND_MESSAGES),
            description="Edit a story id that does not exist",
        ),
        Step(
            name="delete_missing_story",
            order=7,
            request=RequestTemplate("DELETE", DELETE_PATH.format(story_id=MALFORMED_STORY_ID)),
            expected_status=400,
            assertion=ContainsText(*CANNOT_DELETE_MESSAGES),
            description="Delete a malformed story id",
        ),
    ]

    if include_redelete:
        steps.append(
            Step(
                name="delete_story_again",
                order=8,
                request=RequestTemplate("DELETE", DELETE_PATH),
                expected_status=400,
                needs=(STORY_ID,),
                description="Delete the already deleted story",
            )
        )

    return validate_chain(steps)
