"""Scenario state carried between ordered steps.

A plain mapping of logical names to values, with a single-writer-per-key
rule: the first step to write a key owns it, and any other step writing the
same key is an error. Reads of a key that was never written raise
PreconditionError through ``require``.
"""

from typing import Any

from .errors import PreconditionError, StateConflictError

# Key holding the id captured from the create step
STORY_ID = "story_id"


class ScenarioState:
    """Values produced by earlier steps and consumed by later ones."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._writers: dict[str, str] = {}

    def set(self, key: str, value: Any, writer: str) -> None:
        """Store a value.

        Args:
            key: Logical name (e.g. "story_id")
            value: Value to store
            writer: Name of the step writing the value

        Raises:
            StateConflictError: If another step already owns the key
        """
        owner = self._writers.get(key)
        if owner is not None and owner != writer:
            raise StateConflictError(
                message=f"Step '{writer}' cannot write '{key}': owned by step '{owner}'",
                data={"key": key, "owner": owner, "writer": writer},
            )
        self._values[key] = value
        self._writers[key] = writer

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for key, or default when absent."""
        return self._values.get(key, default)

    def require(self, key: str, reader: str | None = None) -> Any:
        """Return the value for key.

        Empty strings count as absent: a step must never run against an
        empty identifier.

        Raises:
            PreconditionError: If the key was never written or is empty
        """
        value = self._values.get(key)
        if value is None or value == "":
            who = f"Step '{reader}'" if reader else "A step"
            raise PreconditionError(
                message=f"{who} needs '{key}', which no earlier step produced",
                key=key,
                data={"key": key, "reader": reader},
            )
        return value

    def writer_of(self, key: str) -> str | None:
        return self._writers.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def snapshot(self) -> dict[str, Any]:
        """Copy of the current values."""
        return dict(self._values)
