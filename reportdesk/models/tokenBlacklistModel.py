from ..addons.extensions import db
from ..addons.functions import utc_now


class TokenBlacklist(db.Model):
    __tablename__ = 'token_blacklist'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    token = db.Column(db.String(500), unique=True, nullable=False)
    blacklisted_on = db.Column(db.DateTime, default=utc_now)

    @classmethod
    def is_revoked(cls, jti):
        return cls.query.filter_by(token=jti).first() is not None
