"""Response validation.

``validate_response`` always checks the status code first. Body assertions
run only when the body is non-empty, because the story service sometimes
answers an error status with no body at all. Structural assertions can
insist on a body with ``require_body=True``; those treat an empty body as a
failure instead of skipping.
"""

from dataclasses import dataclass
from typing import Any

from .client import ResponseRecord
from .errors import MalformedBodyError


@dataclass
class ValidationOutcome:
    """Result of validating one response."""

    passed: bool
    message: str = ""
    expected: Any = None
    actual: Any = None
    parsed_body: Any = None

    @classmethod
    def ok(cls, parsed_body: Any = None) -> "ValidationOutcome":
        return cls(passed=True, parsed_body=parsed_body)

    @classmethod
    def fail(cls, message: str, expected: Any = None, actual: Any = None) -> "ValidationOutcome":
        return cls(passed=False, message=message, expected=expected, actual=actual)


class BodyAssertion:
    """Base class for response body checks."""

    require_body = False

    def describe(self) -> str:
        raise NotImplementedError

    def check(self, response: ResponseRecord) -> ValidationOutcome:
        raise NotImplementedError


class StructuralAssertion(BodyAssertion):
    """Deserializes the body and inspects the decoded value."""

    def __init__(self, require_body: bool = True):
        self.require_body = require_body

    def check(self, response: ResponseRecord) -> ValidationOutcome:
        try:
            payload = response.json()
        except MalformedBodyError as e:
            return ValidationOutcome.fail(e.message, expected="JSON body", actual=response.text[:200])
        return self.inspect(payload)

    def inspect(self, payload: Any) -> ValidationOutcome:
        raise NotImplementedError


class JsonArrayNotEmpty(StructuralAssertion):
    """Body is a JSON array with at least ``min_length`` items."""

    def __init__(self, min_length: int = 1, require_body: bool = True):
        super().__init__(require_body=require_body)
        self.min_length = min_length

    def describe(self) -> str:
        return f"JSON array with length >= {self.min_length}"

    def inspect(self, payload: Any) -> ValidationOutcome:
        if not isinstance(payload, list):
            return ValidationOutcome.fail(
                "Response should be an array",
                expected="array",
                actual=type(payload).__name__,
            )
        if len(payload) < self.min_length:
            return ValidationOutcome.fail(
                "Array should not be empty",
                expected=f"length >= {self.min_length}",
                actual=len(payload),
            )
        return ValidationOutcome.ok(payload)


class JsonFieldPresent(StructuralAssertion):
    """Body is a JSON object with a non-empty value under ``field``."""

    def __init__(self, field: str, require_body: bool = True):
        super().__init__(require_body=require_body)
        self.field = field

    def describe(self) -> str:
        return f"JSON object with non-empty '{self.field}'"

    def inspect(self, payload: Any) -> ValidationOutcome:
        if not isinstance(payload, dict):
            return ValidationOutcome.fail(
                "Response should be an object",
                expected="object",
                actual=type(payload).__name__,
            )
        value = payload.get(self.field)
        if value is None or value == "":
            return ValidationOutcome.fail(
                f"Response is missing '{self.field}'",
                expected=self.field,
                actual=sorted(payload),
            )
        return ValidationOutcome.ok(payload)


class ContainsText(BodyAssertion):
    """Raw body contains at least one of the given fragments.

    Matching is case-insensitive unless ``case_sensitive`` is set.
    """

    def __init__(self, *fragments: str, case_sensitive: bool = False):
        if not fragments:
            raise ValueError("ContainsText needs at least one fragment")
        self.fragments = fragments
        self.case_sensitive = case_sensitive

    def describe(self) -> str:
        return "body contains " + " or ".join(repr(f) for f in self.fragments)

    def check(self, response: ResponseRecord) -> ValidationOutcome:
        text = response.text if self.case_sensitive else response.text.lower()
        for fragment in self.fragments:
            needle = fragment if self.case_sensitive else fragment.lower()
            if needle in text:
                return ValidationOutcome.ok()
        return ValidationOutcome.fail(
            f"Response body does not contain {' or '.join(repr(f) for f in self.fragments)}",
            expected=list(self.fragments),
            actual=response.text[:200],
        )


def validate_response(
    response: ResponseRecord,
    expected_status: int,
    assertion: BodyAssertion | None = None,
) -> ValidationOutcome:
    """Validate status code, then the body when there is one.

    Args:
        response: Response to validate
        expected_status: Required HTTP status code
        assertion: Optional body assertion

    Returns:
        ValidationOutcome; never raises for bad responses
    """
    if response.status_code != expected_status:
        return ValidationOutcome.fail(
            f"Expected status {expected_status}, got {response.status_code}",
            expected=expected_status,
            actual=response.status_code,
        )

    if assertion is None:
        return ValidationOutcome.ok()

    if response.is_empty:
        if assertion.require_body:
            return ValidationOutcome.fail(
                f"Expected {assertion.describe()}, got an empty body",
                expected=assertion.describe(),
                actual="",
            )
        return ValidationOutcome.ok()

    return assertion.check(response)
