from ..addons.extensions import db

from .users import User, ROLES, REVIEWER_ROLES
from .reports import Report, REPORT_STATUSES, AWAITING_REVIEW
from .payment_proofs import PaymentProof
from .report_history import ReportHistory
from .notifications import Notification
from .activityLogModel import ActivityLog
from .tokenBlacklistModel import TokenBlacklist
from .passwordResetTokenModel import PasswordResetToken

__all__ = [
    'db',
    'User',
    'Report',
    'PaymentProof',
    'ReportHistory',
    'Notification',
    'ActivityLog',
    'TokenBlacklist',
    'PasswordResetToken',
    'ROLES',
    'REVIEWER_ROLES',
    'REPORT_STATUSES',
    'AWAITING_REVIEW',
]
