from .users import User, UserRole
from .auth import SessionToken, LoginChallenge
from .equipment import Equipment, EquipmentHistory, ApprovalStatus
from .licenses import License, LicenseTotal
from .audit import AuditLogEntry, AuditAction, AuditTarget
from .settings import AppSetting

__all__ = [
    'User', 'UserRole', 'SessionToken', 'LoginChallenge',
    'Equipment', 'EquipmentHistory', 'ApprovalStatus',
    'License', 'LicenseTotal',
    'AuditLogEntry', 'AuditAction', 'AuditTarget',
    'AppSetting',
]

# Tables dumped and restored by database backups, in restore insertion order.
BACKUP_TABLES = ('users', 'equipment', 'licenses', 'equipment_history', 'audit_log')
