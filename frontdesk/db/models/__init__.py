from frontdesk.db.models.app_setting import AppSetting
from frontdesk.db.models.audit import AuditLog
from frontdesk.db.models.emergency import EmergencySession, EmergencyType
from frontdesk.db.models.user import User, UserRole
from frontdesk.db.models.visitor import AccessLevel, Visitor, VisitorStatus

__all__ = [
    "AccessLevel",
    "AppSetting",
    "AuditLog",
    "EmergencySession",
    "EmergencyType",
    "User",
    "UserRole",
    "Visitor",
    "VisitorStatus",
]
