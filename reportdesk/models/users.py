from ..addons.extensions import BaseModel, db, bcrypt
from ..addons.functions import iso

ROLES = ('admin', 'manager', 'user')
REVIEWER_ROLES = ('manager', 'admin')


class User(BaseModel):
    __tablename__ = 'users'

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    role = db.Column(db.Enum(*ROLES, name='user_role'), nullable=False, default='user')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    last_login = db.Column(db.DateTime, nullable=True)
    # Tokens issued before this instant are treated as revoked (global sign-out)
    sessions_revoked_at = db.Column(db.DateTime, nullable=True)

    def set_password(self, password):
        """Hashes and sets the user's password."""
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        """Verifies a password against the stored hash."""
        return bcrypt.check_password_hash(self.password_hash, password)

    def summary(self):
        return {'id': self.id, 'full_name': self.full_name, 'email': self.email}

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'phone': self.phone,
            'is_active': self.is_active,
            'created_at': iso(self.created_at),
            'created_by': self.created_by,
            'last_login': iso(self.last_login),
        }

    def __repr__(self):
        return f"<User {self.email}>"
