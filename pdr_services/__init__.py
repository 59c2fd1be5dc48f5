"""
pdr_services -- request-facing coordinators.

Composes the kernel (pure state machine, selectors, writers, outbox and
audit services) with the workflow policy from ``pdr_config``.  Callers own
the session and its transaction; nothing here commits.
"""

from pdr_services.error_mapping import ErrorResponse, to_error_response
from pdr_services.pdr_service import PDRService, PDRView
from pdr_services.rating_service import BatchSaveResult, RatingService, RatingUpdate
from pdr_services.workflow_executor import PDRWorkflowService, TransitionReceipt

__all__ = [
    "BatchSaveResult",
    "ErrorResponse",
    "PDRService",
    "PDRView",
    "PDRWorkflowService",
    "RatingService",
    "RatingUpdate",
    "TransitionReceipt",
    "to_error_response",
]
