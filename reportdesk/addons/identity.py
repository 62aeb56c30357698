"""Identity provider: credentials, sessions, invitations and account administration."""
import logging

from flask_jwt_extended import create_access_token, create_refresh_token
from sqlalchemy.exc import SQLAlchemyError

from .errors import Unauthenticated, ValidationError, NotFound, BackendFailure
from .functions import utc_now, gen_len_code, check_email
from ..models import User, TokenBlacklist, PasswordResetToken, ROLES

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class IdentityProvider:
    """Account and session operations over the ``users`` table.

    ``mailer`` is called as ``mailer(heading, email, name, html)`` and must not
    raise; its return value is ignored.
    """

    def __init__(self, database, mailer, site_url):
        self.db = database
        self.mailer = mailer
        self.site_url = site_url.rstrip('/')

    # ---------------------- SESSIONS ---------------------- #
    def issue_tokens(self, user):
        claims = {"email": user.email, "role": user.role}
        return {
            "access_token": create_access_token(identity=str(user.id), additional_claims=claims),
            "refresh_token": create_refresh_token(identity=str(user.id)),
        }

    def sign_in_with_password(self, email, password):
        email = (email or '').strip().lower()
        user = User.query.filter_by(email=email).first()
        if not user or not user.check_password(password or ''):
            raise Unauthenticated('Invalid credentials')
        if not user.is_active:
            raise Unauthenticated('User profile not found or inactive')

        user.last_login = utc_now()
        self._commit('Failed to record sign-in')
        logger.info(f"User {user.id} signed in")
        return user, self.issue_tokens(user)

    def sign_out(self, jti):
        """Revoke a single token."""
        self.db.session.add(TokenBlacklist(token=jti))
        self._commit('Failed to sign out')

    def sign_out_user(self, user):
        """Revoke every token issued to ``user`` so far."""
        user.sessions_revoked_at = utc_now().replace(microsecond=0)

    def refresh(self, user_id, old_jti):
        user = self.db.session.get(User, int(user_id))
        if not user or not user.is_active:
            raise Unauthenticated('User not found or inactive')
        self.db.session.add(TokenBlacklist(token=old_jti))
        tokens = self.issue_tokens(user)
        self._commit('Failed to refresh session')
        return user, tokens

    # ---------------------- PASSWORDS ---------------------- #
    def reset_password_for_email(self, email):
        """Send a recovery link when the account exists; silent otherwise."""
        email = (email or '').strip().lower()
        user = User.query.filter_by(email=email, is_active=True).first()
        if not user:
            logger.info(f"Password reset requested for unknown or inactive address {email}")
            return None

        token = PasswordResetToken.create_token(user.id, purpose='recovery')
        self.db.session.add(token)
        self._commit('Failed to create recovery token')

        link = f"{self.site_url}/auth/reset/confirm?token={token.token}"
        self.mailer(
            "Reset your password",
            user.email,
            user.full_name,
            f"<p>A password reset was requested for your account.</p><p><a href=\"{link}\">Choose a new password</a></p>",
        )
        return token

    def confirm(self, token_value, password):
        """Redeem an invite or recovery token by setting a password."""
        self._check_password(password)
        token = PasswordResetToken.query.filter_by(token=token_value).first()
        if not token or not token.is_valid():
            raise ValidationError('Invalid or expired token')
        if not token.user.is_active:
            raise ValidationError('Account is inactive')

        token.user.set_password(password)
        token.is_used = True
        self._commit('Failed to update password')
        logger.info(f"User {token.user_id} confirmed {token.purpose} token")
        return token.user

    def update_user(self, user, password=None, full_name=None, phone=None):
        if password is not None:
            self._check_password(password)
            user.set_password(password)
        if full_name:
            user.full_name = full_name.strip()
        if phone:
            user.phone = phone.strip()
        self._commit('Failed to update profile')
        return user

    # ---------------------- ADMINISTRATION ---------------------- #
    def create_user(self, email, role, created_by, full_name=None, phone=None):
        email = (email or '').strip().lower()
        if not check_email(email):
            raise ValidationError('A valid email is required')
        if role not in ROLES:
            raise ValidationError('Invalid role specified')
        if User.query.filter_by(email=email).first():
            raise ValidationError('User with this email already exists')

        user = User(
            email=email,
            role=role,
            full_name=full_name,
            phone=phone,
            created_by=created_by,
            is_active=True,
        )
        # Unusable until the invitation is accepted
        user.set_password(gen_len_code(32, False))
        self.db.session.add(user)
        self._commit('Failed to create user')

        try:
            self.invite_user_by_email(user)
        except BackendFailure:
            self.delete_user(user.id)
            raise
        logger.info(f"User {user.id} ({email}) created with role {role} by {created_by}")
        return user

    def invite_user_by_email(self, user):
        token = PasswordResetToken.create_token(user.id, purpose='invite')
        self.db.session.add(token)
        self._commit('Failed to create invitation')

        link = f"{self.site_url}/auth/confirm?token={token.token}"
        self.mailer(
            "You have been invited to Report Desk",
            user.email,
            user.full_name,
            f"<p>An account has been created for you.</p><p><a href=\"{link}\">Accept the invitation and set your password</a></p>",
        )
        return token

    def delete_user(self, user_id):
        """Remove an account that never became usable (failed provisioning only)."""
        user = self.db.session.get(User, user_id)
        if user:
            try:
                user.delete()
            except SQLAlchemyError:
                self.db.session.rollback()
                logger.exception(f"Failed to clean up user {user_id}")

    def set_active(self, user_id, active):
        user = self.db.session.get(User, user_id)
        if not user:
            raise NotFound('User not found')
        user.is_active = active
        if not active:
            self.sign_out_user(user)
        self._commit('Failed to deactivate user' if not active else 'Failed to reactivate user')
        logger.info(f"User {user_id} {'reactivated' if active else 'deactivated'}")
        return user

    def list_users(self, role=None, status=None):
        query = User.query
        if role:
            query = query.filter_by(role=role)
        if status == 'active':
            query = query.filter_by(is_active=True)
        elif status == 'inactive':
            query = query.filter_by(is_active=False)
        return query.order_by(User.created_at.desc(), User.id.desc()).all()

    # ---------------------- HELPERS ---------------------- #
    def _check_password(self, password):
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')

    def _commit(self, failure_message):
        try:
            self.db.session.commit()
        except SQLAlchemyError:
            self.db.session.rollback()
            logger.exception(failure_message)
            raise BackendFailure(failure_message)
