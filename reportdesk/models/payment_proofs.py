from ..addons.extensions import BaseModel, db
from ..addons.functions import iso, utc_now

PROOF_STATUSES = ('pending_approval', 'approved', 'rejected')


class PaymentProof(BaseModel):
    __tablename__ = 'payment_proofs'

    report_id = db.Column(db.Integer, db.ForeignKey('reports.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    file_type = db.Column(db.String(50))
    file_url = db.Column(db.String(500))
    notes = db.Column(db.Text)
    status = db.Column(db.Enum(*PROOF_STATUSES, name='payment_proof_status'), nullable=False, default='pending_approval', index=True)
    manager_comments = db.Column(db.Text)
    approved_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    uploaded_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    report = db.relationship('Report', back_populates='payment_proofs')

    def to_dict(self):
        return {
            'id': self.id,
            'report_id': self.report_id,
            'amount': float(self.amount) if self.amount is not None else 0.0,
            'file_type': self.file_type,
            'file_url': self.file_url,
            'notes': self.notes,
            'status': self.status,
            'manager_comments': self.manager_comments,
            'approved_by': self.approved_by,
            'approved_at': iso(self.approved_at),
            'uploaded_at': iso(self.uploaded_at),
        }
