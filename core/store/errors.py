"""
DocFlow Store — Errors
======================
Typed failures raised by stores, counters, the inventory ledger and the
lifecycle engines.

Propagation:
- NotFound / AlreadyExists / InvalidArgument are expected, local and typed.
  The API boundary translates them into client responses.
- PersistenceError is unexpected. It is raised to the caller of the
  mutating operation and logged loudly. Nothing swallows it.
- Malformed data found while LOADING is not an error here: stores and
  counters downgrade it to a warning and start empty / at their floor.
"""

from __future__ import annotations


class DocFlowError(Exception):
    """Base error for every DocFlow failure."""
    pass


class NotFoundError(DocFlowError):
    """An operation addressed an identity that does not exist."""

    def __init__(self, entity_name: str, identity: str):
        self.entity_name = entity_name
        self.identity = identity
        super().__init__(f"{entity_name} not found with id: {identity}")


class AlreadyExistsError(DocFlowError):
    """A unique key collides with a record under a different identity."""

    def __init__(self, entity_name: str, key: str, value: str):
        self.entity_name = entity_name
        self.key = key
        self.value = value
        super().__init__(
            f"{entity_name} with {key} '{value}' already exists."
        )


class InvalidArgumentError(DocFlowError, ValueError):
    """Blank required field, negative inventory, malformed number, bad status."""
    pass


class InvalidTransitionError(InvalidArgumentError):
    """Status edge not permitted by the document's workflow definition."""

    def __init__(self, workflow: str, from_state: str, to_state: str, allowed):
        self.workflow = workflow
        self.from_state = from_state
        self.to_state = to_state
        self.allowed = tuple(sorted(allowed))
        super().__init__(
            f"Invalid {workflow} transition: {from_state} → {to_state}. "
            f"Allowed: {list(self.allowed)}."
        )


class PersistenceError(DocFlowError):
    """
    Durable write failed.

    The in-memory working set may now be ahead of the backing file.
    """

    def __init__(self, entity_name: str, path, cause: BaseException | None = None):
        self.entity_name = entity_name
        self.path = path
        super().__init__(f"Failed to save {entity_name} to {path}: {cause}")
