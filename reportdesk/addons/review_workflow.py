"""Report and payment-proof review transitions.

Every transition commits the entity first. The audit row, the owner's
notification and the activity log entry are then written one by one; a
failure in any of them is logged and rolled back without undoing the status
change.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from .errors import NotFound, ValidationError, BackendFailure
from .functions import utc_now
from ..models import Report, PaymentProof, ReportHistory, ActivityLog

logger = logging.getLogger(__name__)

ACTIONS = ('approve', 'reject')
NEW_STATUS = {'approve': 'approved', 'reject': 'rejected'}
PAYMENT_STATUS = {'approve': 'completed', 'reject': 'rejected'}
QUICK_REJECTION_REASON = 'Quick rejection from dashboard'


def past_tense(action):
    return NEW_STATUS[action]


class ReviewWorkflow:

    def __init__(self, database, notifications):
        self.db = database
        self.notifications = notifications

    # ---------------------- REPORTS ---------------------- #
    def review_report(self, report_id, action, reviewer, comments=None):
        """Approve or reject a report regardless of its current status."""
        self._check_action(action)
        report = self._get_report(report_id)
        previous_status = report.status
        new_status = NEW_STATUS[action]
        now = utc_now()

        details = dict(report.processing_details or {})
        details['managerAction'] = {
            'action': action,
            'comments': comments or '',
            'managerId': reviewer.id,
            'managerName': reviewer.full_name,
            'actionDate': now.isoformat(),
        }
        report.status = new_status
        report.processing_details = details
        report.updated_at = now
        if comments:
            report.manager_comments = comments
        if action == 'approve':
            report.approved_by = reviewer.id
            report.approved_at = now
        else:
            report.rejection_reason = comments or None
        self._commit('Failed to update report status')

        done = past_tense(action)
        self._record_history(report.id, f"report_{done}", previous_status, new_status,
                             comments or f"Report {done} by {reviewer.full_name or 'manager'}", reviewer.id)
        self._notify(
            report.user_id,
            f"report_{done}",
            f"Report {'Approved' if action == 'approve' else 'Rejected'}",
            f'Your report "{report.filename}" has been {done}.' + (f" {comments}" if comments else ''),
            {'reportId': report.id, 'action': action, 'comment': comments or ''},
        )
        self._log_activity(reviewer.id, f"Report {done}", report.id, {
            'reportId': report.id,
            'userId': report.user_id,
            'userName': report.owner.full_name if report.owner else None,
            'comments': comments or '',
            'totalAmount': report.amount,
        })

        logger.info(f"Report {report.id} {done} by user {reviewer.id}")
        return {'reportId': report.id, 'action': action, 'status': new_status, 'comments': comments or ''}

    def quick_action(self, report_id, action, reviewer):
        """Dashboard shortcut: only a ``pending`` report may be decided."""
        self._check_action(action)
        report = self._get_report(report_id)
        if report.status != 'pending':
            raise ValidationError('Report is not pending approval')

        new_status = NEW_STATUS[action]
        now = utc_now()
        report.status = new_status
        report.updated_at = now
        if action == 'approve':
            report.approved_by = reviewer.id
            report.approved_at = now
        else:
            report.rejection_reason = QUICK_REJECTION_REASON
        self._commit('Failed to update report status')

        done = past_tense(action)
        self._record_history(report.id, f"report_{done}", 'pending', new_status,
                             f"Quick {action} from manager dashboard", reviewer.id)
        self._log_activity(reviewer.id, f"Report {done}: {report.filename}", report.id, {
            'reportId': report.id,
            'action': action,
            'filename': report.filename,
            'quickAction': True,
        })
        if action == 'approve':
            title = 'Report Approved'
            message = f'Your report "{report.filename}" has been approved by {reviewer.full_name or "a manager"}'
        else:
            title = 'Report Rejected'
            message = f'Your report "{report.filename}" has been rejected. Please review and resubmit if needed.'
        self._notify(report.user_id, f"report_{done}", title, message, {
            'reportId': report.id,
            'action': action,
            'managerId': reviewer.id,
            'managerName': reviewer.full_name,
        })

        logger.info(f"Report {report.id} quick-{done} by user {reviewer.id}")
        return {'reportId': report.id, 'newStatus': new_status, 'action': action}

    def add_comment(self, report_id, comment, reviewer, action=None):
        """Attach a manager comment, optionally deciding the report at the same time."""
        if action is not None:
            self._check_action(action)
        if not comment or not comment.strip():
            raise ValidationError('Report ID and comment are required')
        report = self._get_report(report_id)
        previous_status = report.status

        report.manager_comments = comment
        report.updated_at = utc_now()
        if action:
            report.status = NEW_STATUS[action]
            if action == 'reject':
                report.rejection_reason = comment
        self._commit('Failed to add comment')

        if action:
            done = past_tense(action)
            history_action = f"manager_{done}"
            notification_type = f"report_{done}"
            title = f"Report {'Approved' if action == 'approve' else 'Rejected'}"
            message = f'Your report "{report.filename}" has been {done}. {comment}'
            activity = f"Report {done} with comment: {report.filename}"
        else:
            history_action = notification_type = 'comment_added'
            title = 'Manager Comment Added'
            message = f'A manager has added a comment to your report "{report.filename}". {comment}'
            activity = f"Comment added: {report.filename}"

        self._record_history(report.id, history_action, previous_status, report.status, comment, reviewer.id)
        self._notify(report.user_id, notification_type, title, message, {
            'reportId': report.id,
            'action': action or 'comment',
            'comment': comment,
        })
        self._log_activity(reviewer.id, activity, report.id, {
            'reportId': report.id,
            'action': action or 'comment',
            'comment': comment[:100],
        })

        logger.info(f"Manager {reviewer.id} commented on report {report.id} (action={action or 'comment'})")
        return {'reportId': report.id, 'comment': comment, 'action': action or 'comment', 'status': report.status}

    # ---------------------- PAYMENT PROOFS ---------------------- #
    def review_payment_proof(self, proof_id, action, reviewer, comments=None):
        """Decide a payment proof, then propagate the outcome onto its report.

        The two entity writes are separate commits: if the report update fails
        the proof keeps its new status and BackendFailure is raised.
        """
        self._check_action(action)
        proof = self.db.session.get(PaymentProof, proof_id)
        if not proof:
            raise NotFound('Payment proof not found')
        report = proof.report
        previous_status = proof.status
        new_status = NEW_STATUS[action]
        payment_status = PAYMENT_STATUS[action]
        now = utc_now()

        proof.status = new_status
        proof.manager_comments = comments or None
        proof.approved_by = reviewer.id
        proof.approved_at = now if action == 'approve' else None
        proof.updated_at = now
        self._commit('Failed to update payment proof')

        report.payment_status = payment_status
        report.payment_proof_status = new_status
        report.manager_comments = comments or None
        report.updated_at = now
        self._commit('Failed to update report')

        done = past_tense(action)
        self._record_history(report.id, f"payment_proof_{done}", previous_status, new_status,
                             comments or f"Payment proof {done} by manager", reviewer.id)
        if action == 'approve':
            message = 'Your payment proof has been approved and payment is now completed.'
        else:
            message = 'Your payment proof has been rejected. ' + (
                f"Reason: {comments}" if comments else 'Please resubmit with correct documentation.'
            )
        self._notify(report.user_id, f"payment_proof_{done}",
                     f"Payment Proof {'Approved' if action == 'approve' else 'Rejected'}", message, {
                         'reportId': report.id,
                         'paymentProofId': proof.id,
                         'action': action,
                         'comments': comments,
                     })
        self._log_activity(reviewer.id, f"Payment proof {done}", report.id, {
            'reportId': report.id,
            'paymentProofId': proof.id,
            'amount': float(proof.amount or 0),
            'comments': comments or '',
        })

        logger.info(f"Payment proof {proof.id} {done} by user {reviewer.id} (report {report.id})")
        return {
            'paymentProofId': proof.id,
            'reportId': report.id,
            'status': new_status,
            'paymentStatus': payment_status,
            'comments': comments,
        }

    # ---------------------- HISTORY ---------------------- #
    def history(self, report_id):
        self._get_report(report_id)
        rows = (
            ReportHistory.query.filter_by(report_id=report_id)
            .order_by(ReportHistory.created_at.desc(), ReportHistory.id.desc())
            .all()
        )
        return [row.to_dict() for row in rows]

    # ---------------------- HELPERS ---------------------- #
    def _check_action(self, action):
        if action not in ACTIONS:
            raise ValidationError('Valid action (approve/reject) is required')

    def _get_report(self, report_id):
        report = self.db.session.get(Report, report_id)
        if not report:
            raise NotFound('Report not found')
        return report

    def _commit(self, failure_message):
        try:
            self.db.session.commit()
        except SQLAlchemyError:
            self.db.session.rollback()
            logger.exception(failure_message)
            raise BackendFailure(failure_message)

    def _best_effort(self, label, write):
        try:
            write()
            self.db.session.commit()
            return True
        except SQLAlchemyError:
            self.db.session.rollback()
            logger.exception(f"{label} failed; primary change kept")
            return False

    def _record_history(self, report_id, action, previous_status, new_status, comments, performed_by):
        return self._best_effort(
            f"History insert for report {report_id}",
            lambda: self.db.session.add(ReportHistory(
                report_id=report_id,
                action=action,
                previous_status=previous_status,
                new_status=new_status,
                comments=comments,
                performed_by=performed_by,
            )),
        )

    def _notify(self, user_id, type, title, message, data):
        try:
            self.notifications.notify(user_id, type, title, message, data)
            return True
        except SQLAlchemyError:
            self.db.session.rollback()
            logger.exception(f"Notification insert for user {user_id} failed; primary change kept")
            return False

    def _log_activity(self, user_id, action, report_id, details):
        return self._best_effort(
            f"Activity log for report {report_id}",
            lambda: self.db.session.add(ActivityLog(
                user_id=user_id,
                action=action,
                entity_type='report',
                entity_id=report_id,
                details=details,
            )),
        )
