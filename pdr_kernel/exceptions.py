"""
Typed Exception Hierarchy for the PDR Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Route handlers translate failures into HTTP responses with a machine-readable
code.  Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Every exception has an HTTP_STATUS attribute (the caller's mapping)
  4. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        workflow.execute(pdr_id, PDRAction.SUBMIT_FOR_REVIEW, actor)
    except Exception as e:
        if "goal" in str(e):  # FRAGILE
            ...

Example - RIGHT way:
    try:
        workflow.execute(pdr_id, PDRAction.SUBMIT_FOR_REVIEW, actor)
    except TransitionValidationError as e:
        return {"code": e.code, "errors": list(e.errors)}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PDRKernelError (base)
    |
    +-- AuthorizationError
    |   +-- ActorNotPermittedError  (also an InvalidStateTransitionError)
    |   +-- PDRReadOnlyError
    |
    +-- StateTransitionError
    |   +-- UnknownActionError
    |   +-- InvalidStateTransitionError
    |       +-- InvalidStatusError
    |       +-- ActorNotPermittedError
    |
    +-- TransitionValidationError
    |
    +-- NotFoundError
    |   +-- PDRNotFoundError
    |   +-- GoalNotFoundError
    |   +-- BehaviorNotFoundError
    |   +-- NotificationNotFoundError
    |   +-- CompanyValueNotFoundError
    |
    +-- ConflictError
    |   +-- AlreadyCalibratedError
    |   +-- PDRAlreadyExistsError
    |   +-- DuplicateBehaviorError
    |
    +-- ConcurrencyError
    |   +-- StaleSnapshotError
    |   +-- OptimisticLockError
    |
    +-- BatchUpdateError
    |   +-- InvalidRatingIdsError
    |   +-- PartialUpdateFailureError
    |
    +-- LockInvariantError
    +-- InvalidFinancialYearError
    +-- ConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | HTTP | When Raised
----------------|-----------------------------|------|----------------------------------
Authorization   | INSUFFICIENT_PERMISSIONS    | 403  | Role/ownership does not allow it
                | PDR_READ_ONLY               | 403  | Status or lock forbids editing
----------------|-----------------------------|------|----------------------------------
Transition      | UNKNOWN_ACTION              | 400  | No transition row for the action
                | INVALID_STATE_TRANSITION    | 400  | Action not legal from this status
                | INVALID_STATUS              | 400  | Status-gated action, wrong status
                | VALIDATION_FAILED           | 400  | Required data missing
----------------|-----------------------------|------|----------------------------------
Not found       | PDR_NOT_FOUND               | 404  | Unknown or not visible to actor
                | GOAL_NOT_FOUND              | 404  |
                | BEHAVIOR_NOT_FOUND          | 404  |
                | NOTIFICATION_NOT_FOUND      | 404  | Missing or not the reader's
                | COMPANY_VALUE_NOT_FOUND     | 404  | Unknown or inactive value
----------------|-----------------------------|------|----------------------------------
Conflict        | ALREADY_CALIBRATED          | 400  | Calibration closed twice
                | PDR_EXISTS                  | 409  | Second PDR for the same FY
                | DUPLICATE_BEHAVIOR          | 409  | Second behavior for one value
----------------|-----------------------------|------|----------------------------------
Concurrency     | STALE_PDR_SNAPSHOT          | 409  | Snapshot status != expected
                | OPTIMISTIC_LOCK_CONFLICT    | 409  | Row version changed under us
----------------|-----------------------------|------|----------------------------------
Batch           | INVALID_RATING_IDS          | 400  | Ids not owned by the PDR
                | PARTIAL_UPDATE_FAILURE      | 500  | N of M record saves failed
----------------|-----------------------------|------|----------------------------------
Internal        | LOCK_INVARIANT_VIOLATION    | 500  | A change would unlock a PDR
                | INVALID_FINANCIAL_YEAR      | 400  | Malformed FY label
                | CONFIG_ERROR                | 500  | Workflow policy rejected
"""

from __future__ import annotations

from typing import Iterable


class PDRKernelError(Exception):
    """
    Base exception for all PDR kernel errors.

    All subclasses must have ``code`` and ``http_status`` class attributes.
    """

    code: str = "PDR_KERNEL_ERROR"
    http_status: int = 500


# Authorization


class AuthorizationError(PDRKernelError):
    """Actor lacks the role or ownership for the requested operation."""

    code: str = "INSUFFICIENT_PERMISSIONS"
    http_status: int = 403

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


class PDRReadOnlyError(AuthorizationError):
    """The PDR cannot be edited by this actor in its current status."""

    code: str = "PDR_READ_ONLY"

    def __init__(self, pdr_id: str, read_only_reason: str):
        self.pdr_id = pdr_id
        self.read_only_reason = read_only_reason
        super().__init__(read_only_reason)


# State transitions


class StateTransitionError(PDRKernelError):
    """Base exception for lifecycle transition failures."""

    code: str = "STATE_TRANSITION_ERROR"
    http_status: int = 400


class UnknownActionError(StateTransitionError):
    """No transition row exists for the requested action."""

    code: str = "UNKNOWN_ACTION"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown PDR action: {action}")


class InvalidStateTransitionError(StateTransitionError):
    """The action is not legal from the PDR's current status."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, message: str, action: str, from_status: str, role: str):
        self.action = action
        self.from_status = from_status
        self.role = role
        super().__init__(message)


class InvalidStatusError(InvalidStateTransitionError):
    """Status-gated action attempted while the PDR is in the wrong status."""

    code: str = "INVALID_STATUS"


class ActorNotPermittedError(InvalidStateTransitionError, AuthorizationError):
    """The actor's role is not allowed to perform this action at all."""

    code: str = "INSUFFICIENT_PERMISSIONS"
    http_status: int = 403


class TransitionValidationError(PDRKernelError):
    """
    The transition is state-legal but required data is missing.

    Carries every violated requirement, not just the first.
    """

    code: str = "VALIDATION_FAILED"
    http_status: int = 400

    def __init__(self, action: str, errors: Iterable[str]):
        self.action = action
        self.errors = tuple(errors)
        super().__init__("Validation failed: " + ", ".join(self.errors))


# Not found


class NotFoundError(PDRKernelError):
    """Base exception for missing (or invisible) records."""

    code: str = "NOT_FOUND"
    http_status: int = 404


class PDRNotFoundError(NotFoundError):
    """PDR does not exist or is not visible to the actor."""

    code: str = "PDR_NOT_FOUND"

    def __init__(self, pdr_id: str):
        self.pdr_id = pdr_id
        super().__init__("PDR not found")


class GoalNotFoundError(NotFoundError):
    code: str = "GOAL_NOT_FOUND"

    def __init__(self, goal_id: str):
        self.goal_id = goal_id
        super().__init__("Goal not found")


class BehaviorNotFoundError(NotFoundError):
    code: str = "BEHAVIOR_NOT_FOUND"

    def __init__(self, behavior_id: str):
        self.behavior_id = behavior_id
        super().__init__("Behavior not found")


class NotificationNotFoundError(NotFoundError):
    code: str = "NOTIFICATION_NOT_FOUND"

    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__("Notification not found")


class CompanyValueNotFoundError(NotFoundError):
    code: str = "COMPANY_VALUE_NOT_FOUND"

    def __init__(self, company_value_id: str):
        self.company_value_id = company_value_id
        super().__init__("Company value not found")


# Conflicts


class ConflictError(PDRKernelError):
    """Base exception for duplicate or already-applied operations."""

    code: str = "CONFLICT"
    http_status: int = 409


class AlreadyCalibratedError(ConflictError):
    """Calibration was already closed for this PDR."""

    code: str = "ALREADY_CALIBRATED"
    http_status: int = 400

    def __init__(self, pdr_id: str):
        self.pdr_id = pdr_id
        super().__init__("Calibration has already been closed for this PDR")


class PDRAlreadyExistsError(ConflictError):
    """The employee already has a PDR for this financial year."""

    code: str = "PDR_EXISTS"

    def __init__(self, user_id: str, fy_label: str):
        self.user_id = user_id
        self.fy_label = fy_label
        super().__init__(f"A PDR already exists for financial year {fy_label}")


class DuplicateBehaviorError(ConflictError):
    """A behavior for this company value already exists on the PDR."""

    code: str = "DUPLICATE_BEHAVIOR"

    def __init__(self, pdr_id: str, company_value_id: str):
        self.pdr_id = pdr_id
        self.company_value_id = company_value_id
        super().__init__(
            f"PDR {pdr_id} already has a behavior for company value {company_value_id}"
        )


# Concurrency


class ConcurrencyError(PDRKernelError):
    """Base exception for concurrent-modification failures."""

    code: str = "CONCURRENCY_ERROR"
    http_status: int = 409


class StaleSnapshotError(ConcurrencyError):
    """The caller's expected status no longer matches the loaded snapshot."""

    code: str = "STALE_PDR_SNAPSHOT"

    def __init__(self, pdr_id: str, expected_status: str, actual_status: str):
        self.pdr_id = pdr_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        super().__init__(
            f"PDR {pdr_id} is {actual_status}, expected {expected_status}; "
            "re-fetch and retry"
        )


class OptimisticLockError(ConcurrencyError):
    """The PDR row was modified by another writer."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, pdr_id: str):
        self.pdr_id = pdr_id
        super().__init__(f"PDR {pdr_id} was modified concurrently")


# Batch operations


class BatchUpdateError(PDRKernelError):
    code: str = "BATCH_UPDATE_ERROR"
    http_status: int = 400


class InvalidRatingIdsError(BatchUpdateError):
    """Batch rating save referenced records that do not belong to the PDR."""

    code: str = "INVALID_RATING_IDS"

    def __init__(self, record_type: str, invalid_ids: Iterable[str]):
        self.record_type = record_type
        self.invalid_ids = tuple(invalid_ids)
        super().__init__(
            f"Invalid {record_type} IDs: {', '.join(self.invalid_ids)}"
        )


class PartialUpdateFailureError(BatchUpdateError):
    """Some records in a batch save failed; the rest were saved."""

    code: str = "PARTIAL_UPDATE_FAILURE"
    http_status: int = 500

    def __init__(
        self,
        record_type: str,
        succeeded: Iterable[str],
        failed: dict[str, str],
    ):
        self.record_type = record_type
        self.succeeded = tuple(succeeded)
        self.failed = dict(failed)
        total = len(self.succeeded) + len(self.failed)
        super().__init__(
            f"Failed to update {len(self.failed)} of {total} {record_type}(s)"
        )


# Internal


class LockInvariantError(PDRKernelError):
    """A change would unlock a locked PDR."""

    code: str = "LOCK_INVARIANT_VIOLATION"

    def __init__(self, pdr_id: str):
        self.pdr_id = pdr_id
        super().__init__(f"PDR {pdr_id} is locked and can never be unlocked")


class InvalidFinancialYearError(PDRKernelError):
    code: str = "INVALID_FINANCIAL_YEAR"
    http_status: int = 400

    def __init__(self, label: str):
        self.label = label
        super().__init__(
            f"Invalid Financial Year label: {label}. Expected format: YYYY-YYYY"
        )


class ConfigError(PDRKernelError):
    """Workflow policy configuration was rejected."""

    code: str = "CONFIG_ERROR"

    def __init__(self, message: str, errors: Iterable[str] = ()):
        self.errors = tuple(errors)
        super().__init__(message)
