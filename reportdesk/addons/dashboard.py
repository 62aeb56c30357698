"""Read-only manager dashboard figures.

Each figure is computed from a plain row scan reduced in Python. The scans run
concurrently, each in its own application context (and therefore its own
database session); a scan that fails contributes an empty result.
"""
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from .functions import utc_now
from ..models import Report, PaymentProof, User, ActivityLog

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10
OPEN_PAYMENT_STATUSES = ('pending', 'processing')


def time_windows(now):
    """UTC starts of the current day, week (Sunday) and month."""
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_week = start_of_day - timedelta(days=(start_of_day.weekday() + 1) % 7)
    start_of_month = start_of_day.replace(day=1)
    return start_of_day, start_of_week, start_of_month


def percentage(part, total):
    """Whole percent rounded half up, 0 for an empty population."""
    if not total:
        return 0
    return math.floor(100 * part / total + 0.5)


def average_hours(rows):
    durations = [
        (row.approved_at - row.created_at).total_seconds() / 3600
        for row in rows
        if row.approved_at and row.created_at
    ]
    if not durations:
        return 0
    return math.floor(sum(durations) / len(durations) + 0.5)


def amount_sum(rows):
    return round(sum(float(row.total_amount or 0) for row in rows), 2)


class DashboardAggregator:

    def __init__(self, database, max_workers=7):
        self.db = database
        self.max_workers = max_workers

    def _gather(self, scans):
        """Run ``{name: callable}`` scans concurrently and return ``{name: rows}``."""
        app = current_app._get_current_object()

        def run(name, scan):
            with app.app_context():
                try:
                    return scan()
                except SQLAlchemyError:
                    logger.exception(f"Dashboard scan '{name}' failed")
                    return []

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(scans))) as pool:
            futures = {name: pool.submit(run, name, scan) for name, scan in scans.items()}
            return {name: future.result() for name, future in futures.items()}

    def stats(self, now=None):
        now = now or utc_now()
        start_of_day, start_of_week, start_of_month = time_windows(now)

        rows = self._gather({
            'pending_reports': lambda: Report.query.with_entities(Report.id).filter(Report.status == 'pending').all(),
            'pending_proofs': lambda: PaymentProof.query.with_entities(PaymentProof.id)
                .filter(PaymentProof.status == 'pending_approval').all(),
            'today': lambda: Report.query.with_entities(Report.id, Report.total_amount)
                .filter(Report.created_at >= start_of_day).all(),
            'week': lambda: Report.query.with_entities(Report.total_amount)
                .filter(Report.created_at >= start_of_week).all(),
            'month': lambda: Report.query.with_entities(Report.status, Report.approved_at, Report.created_at)
                .filter(Report.created_at >= start_of_month).all(),
            'all_reports': lambda: Report.query.with_entities(Report.id, Report.total_amount, Report.status).all(),
            'active_users': lambda: User.query.with_entities(User.id).filter(User.is_active.is_(True)).all(),
        })

        month = rows['month']
        approved = [r for r in month if r.status == 'approved']
        rejected = [r for r in month if r.status == 'rejected']
        all_reports = rows['all_reports']

        return {
            'totalUsers': len(rows['active_users']),
            'pendingPayments': amount_sum(r for r in all_reports if r.status in OPEN_PAYMENT_STATUSES),
            'totalPayments': amount_sum(all_reports),
            'totalReports': len(all_reports),
            'pendingReports': len(rows['pending_reports']),
            'pendingPaymentProofs': len(rows['pending_proofs']),
            'totalReportsToday': len(rows['today']),
            'totalAmountToday': amount_sum(rows['today']),
            'todaySubmissions': len(rows['today']),
            'thisWeekAmount': amount_sum(rows['week']),
            'approvalRate': percentage(len(approved), len(month)),
            'rejectionRate': percentage(len(rejected), len(month)),
            'averageApprovalTime': average_hours(approved),
        }

    def pending_reports(self, statuses):
        reports = (
            Report.query.filter(Report.status.in_(statuses))
            .order_by(Report.created_at.desc(), Report.id.desc())
            .all()
        )
        return [report.to_dict(with_owner=True) for report in reports]

    def recent_activity(self):
        rows = self._gather({
            'reports': lambda: [
                report.to_dict(with_owner=True)
                for report in Report.query.filter(Report.status == 'pending')
                .order_by(Report.created_at.desc(), Report.id.desc())
                .limit(RECENT_LIMIT).all()
            ],
            'proofs': lambda: [
                proof.to_dict()
                for proof in PaymentProof.query.filter(PaymentProof.status == 'pending_approval')
                .order_by(PaymentProof.uploaded_at.desc(), PaymentProof.id.desc())
                .limit(RECENT_LIMIT).all()
            ],
            'actions': lambda: [
                describe_action(log)
                for log in ActivityLog.query.filter(or_(
                    ActivityLog.action.ilike('%approved%'),
                    ActivityLog.action.ilike('%rejected%'),
                    ActivityLog.action.ilike('%comment%'),
                )).order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
                .limit(RECENT_LIMIT).all()
            ],
        })

        pending_reports = [
            {
                'id': report['id'],
                'filename': report['filename'],
                'total_amount': report['total_amount'],
                'created_at': report['created_at'],
                'status': report['status'],
                'user': report['user'],
            }
            for report in rows['reports']
        ]
        return {
            'pendingReports': pending_reports,
            'pendingProofs': rows['proofs'],
            'recentActions': rows['actions'],
        }


def describe_action(log):
    text = log.action.lower()
    subject = 'Payment proof' if text.startswith('payment proof') else 'Report'
    if 'approved' in text:
        action_type, description = 'approval', f'{subject} approved'
    elif 'rejected' in text:
        action_type, description = 'rejection', f'{subject} rejected'
    else:
        action_type, description = 'comment', 'Comment added'
    details = log.details or {}
    return {
        'id': log.id,
        'type': action_type,
        'description': description,
        'timestamp': log.created_at.isoformat() if log.created_at else None,
        'reportId': details.get('reportId', ''),
    }
