from ..addons.extensions import db
from ..addons.functions import utc_now, iso
from datetime import timedelta
import uuid

TOKEN_LIFETIMES = {
    'invite': timedelta(days=7),
    'recovery': timedelta(hours=24),
}


class PasswordResetToken(db.Model):
    """One-time token used to accept an invitation or recover a password."""
    __tablename__ = 'password_reset_tokens'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    token = db.Column(db.String(100), unique=True, nullable=False)
    purpose = db.Column(db.Enum('invite', 'recovery', name='token_purpose'), nullable=False, default='recovery')
    expires_at = db.Column(db.DateTime, nullable=False)
    is_used = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=utc_now)

    user = db.relationship('User', backref=db.backref('password_reset_tokens', lazy=True, cascade='all, delete-orphan'))

    @classmethod
    def create_token(cls, user_id, purpose='recovery'):
        """Create a new token for the given purpose"""
        return cls(
            user_id=user_id,
            token=str(uuid.uuid4()),
            purpose=purpose,
            expires_at=utc_now() + TOKEN_LIFETIMES[purpose],
        )

    def is_valid(self):
        """Check if token is still valid"""
        return not self.is_used and utc_now() < self.expires_at

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'purpose': self.purpose,
            'expires_at': iso(self.expires_at),
            'is_used': self.is_used,
        }
