# models/reports.py
from ..addons.extensions import BaseModel, db
from ..addons.functions import iso

REPORT_STATUSES = ('pending', 'pending_approval', 'processing', 'approved', 'rejected')
PAYMENT_STATUSES = ('pending', 'completed', 'rejected')
AWAITING_REVIEW = ('pending', 'pending_approval')


class Report(BaseModel):
    __tablename__ = 'reports'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    filename = db.Column(db.String(255), nullable=False)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(db.Enum(*REPORT_STATUSES, name='report_status'), nullable=False, default='pending', index=True)
    payment_status = db.Column(db.Enum(*PAYMENT_STATUSES, name='report_payment_status'), nullable=True)
    payment_proof_status = db.Column(db.String(50), nullable=True)
    manager_comments = db.Column(db.Text)
    rejection_reason = db.Column(db.Text)
    processing_details = db.Column(db.JSON, nullable=True)
    approved_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)

    owner = db.relationship('User', foreign_keys=[user_id], lazy='joined')
    payment_proofs = db.relationship('PaymentProof', back_populates='report', lazy='dynamic')

    @property
    def amount(self):
        return float(self.total_amount) if self.total_amount is not None else 0.0

    def to_dict(self, with_owner=False):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'filename': self.filename,
            'total_amount': self.amount,
            'status': self.status,
            'payment_status': self.payment_status,
            'payment_proof_status': self.payment_proof_status,
            'manager_comments': self.manager_comments,
            'rejection_reason': self.rejection_reason,
            'processing_details': self.processing_details or {},
            'approved_by': self.approved_by,
            'approved_at': iso(self.approved_at),
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }
        if with_owner:
            data['user'] = self.owner.summary() if self.owner else None
        return data
