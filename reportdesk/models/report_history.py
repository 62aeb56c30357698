from sqlalchemy import event
from ..addons.extensions import db
from ..addons.functions import iso, utc_now


class ReportHistory(db.Model):
    """Audit trail of report status transitions. Rows are write-once."""
    __tablename__ = 'report_history'

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.Integer, db.ForeignKey('reports.id'), nullable=False, index=True)
    action = db.Column(db.String(50), nullable=False)           # report_approved, comment_added, ...
    previous_status = db.Column(db.String(50), nullable=True)
    new_status = db.Column(db.String(50), nullable=True)
    comments = db.Column(db.Text, nullable=True)
    performed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "report_id": self.report_id,
            "action": self.action,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "comments": self.comments,
            "performed_by": self.performed_by,
            "created_at": iso(self.created_at),
        }


@event.listens_for(ReportHistory, 'before_update')
def refuse_history_update(mapper, connection, target):
    raise ValueError(f"report_history row {target.id} is append-only")


@event.listens_for(ReportHistory, 'before_delete')
def refuse_history_delete(mapper, connection, target):
    raise ValueError(f"report_history row {target.id} is append-only")
