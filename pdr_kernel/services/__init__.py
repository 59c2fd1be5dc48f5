"""Kernel services -- flush-only writers over the caller's session."""

from pdr_kernel.services.auditor_service import AuditorService, AuditWriteSummary
from pdr_kernel.services.base import BaseService
from pdr_kernel.services.notification_service import NotificationService
from pdr_kernel.services.pdr_writer import PDRWriter

__all__ = [
    "AuditorService",
    "AuditWriteSummary",
    "BaseService",
    "NotificationService",
    "PDRWriter",
]
