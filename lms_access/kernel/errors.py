"""
Typed errors raised by the access control kernel and engines.

Structural errors describe a caller mistake on a mutation and are never
retried. DependencyUnavailable means an access decision could not be made at
all, which callers must keep distinct from "access denied".
"""

from typing import Optional


class AccessControlError(Exception):
    """Base class for every error the engine raises on purpose."""

    code: str = "access_control_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ItemNotFound(AccessControlError):
    """An item id is not registered."""

    code = "item_not_found"

    def __init__(self, item_id: str):
        super().__init__(f"Item {item_id} not found")
        self.item_id = item_id


class ItemAlreadyExists(AccessControlError):
    """An item with this id is already registered."""

    code = "item_already_exists"

    def __init__(self, item_id: str):
        super().__init__(f"Item {item_id} already exists")
        self.item_id = item_id


class EdgeError(AccessControlError):
    """Base for errors about one prerequisite edge."""

    def __init__(self, message: str, item_id: str, prerequisite_id: str):
        super().__init__(message)
        self.item_id = item_id
        self.prerequisite_id = prerequisite_id


class EdgeAlreadyExists(EdgeError):
    code = "edge_already_exists"

    def __init__(self, item_id: str, prerequisite_id: str):
        super().__init__(
            f"{prerequisite_id} is already a prerequisite of {item_id}",
            item_id,
            prerequisite_id,
        )


class EdgeNotFound(EdgeError):
    code = "edge_not_found"

    def __init__(self, item_id: str, prerequisite_id: str):
        super().__init__(
            f"{prerequisite_id} is not a prerequisite of {item_id}",
            item_id,
            prerequisite_id,
        )


class SelfReferenceRejected(EdgeError):
    code = "self_reference_rejected"

    def __init__(self, item_id: str):
        super().__init__(
            f"Item {item_id} cannot be a prerequisite of itself",
            item_id,
            item_id,
        )


class CycleRejected(EdgeError):
    code = "cycle_rejected"

    def __init__(self, item_id: str, prerequisite_id: str):
        super().__init__(
            f"Making {prerequisite_id} a prerequisite of {item_id} would create a circular requirement",
            item_id,
            prerequisite_id,
        )


class DependencyUnavailable(AccessControlError):
    """The completion tracker could not be reached or answered garbage."""

    code = "dependency_unavailable"

    def __init__(self, dependency: str, detail: Optional[str] = None):
        message = f"{dependency} is unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.dependency = dependency
