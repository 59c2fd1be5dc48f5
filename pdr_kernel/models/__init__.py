"""ORM models for the PDR kernel."""

from pdr_kernel.models.audit_log import AuditLog
from pdr_kernel.models.company_value import CompanyValue
from pdr_kernel.models.notification import NotificationModel
from pdr_kernel.models.pdr import BehaviorModel, GoalModel, PDRModel
from pdr_kernel.models.review import EndYearReviewModel, MidYearReviewModel
from pdr_kernel.models.user import User

__all__ = [
    "AuditLog",
    "BehaviorModel",
    "CompanyValue",
    "EndYearReviewModel",
    "GoalModel",
    "MidYearReviewModel",
    "NotificationModel",
    "PDRModel",
    "User",
]
