import itertools

import pytest
from flask_jwt_extended import create_access_token, create_refresh_token

from reportdesk import create_app
from reportdesk.addons.extensions import db
from reportdesk.addons.services import get_services
from reportdesk.models import User, Report, PaymentProof, Notification

PASSWORD = 'password123'


@pytest.fixture
def app(tmp_path):
    # File database: dashboard scans run in worker threads with their own connections
    app = create_app({
        'TESTING': True,
        'ENVIRONMENT': 'Development',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'reportdesk.db'}",
        'JWT_SECRET_KEY': 'test-jwt-secret-key-that-is-long-enough',
        'JWT_COOKIE_CSRF_PROTECT': False,
        'JWT_COOKIE_SECURE': False,
        'BCRYPT_LOG_ROUNDS': 4,
        'LOG_FILE': '',
        'SITE_URL': 'http://frontend.test',
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    with app.app_context():
        return get_services()


@pytest.fixture(autouse=True)
def outbox(app):
    """Captures e-mails instead of calling Brevo."""
    sent = []

    def mailer(heading, email, name, msg):
        sent.append({'heading': heading, 'email': email, 'name': name, 'msg': msg})
        return True

    app.extensions['reportdesk'].identity.mailer = mailer
    return sent


# ---------------------- FACTORIES ---------------------- #
@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def factory(role='user', email=None, password=PASSWORD, is_active=True, full_name=None):
        n = next(counter)
        with app.app_context():
            user = User(
                email=email or f"{role}{n}@example.com",
                role=role,
                full_name=full_name or f"{role.title()} {n}",
                is_active=is_active,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return factory


@pytest.fixture
def make_report(app):
    def factory(user_id, status='pending', total_amount=100, filename='expenses.xlsx', **fields):
        with app.app_context():
            report = Report(user_id=user_id, status=status, total_amount=total_amount, filename=filename, **fields)
            db.session.add(report)
            db.session.commit()
            return report.id

    return factory


@pytest.fixture
def make_proof(app):
    def factory(report_id, amount=100, status='pending_approval', **fields):
        with app.app_context():
            proof = PaymentProof(report_id=report_id, amount=amount, status=status,
                                 file_type='pdf', file_url='https://files.example.com/proof.pdf', **fields)
            db.session.add(proof)
            db.session.commit()
            return proof.id

    return factory


@pytest.fixture
def make_notification(app):
    def factory(user_id, title='Hello', read=False, type='comment_added', **fields):
        with app.app_context():
            notification = Notification(user_id=user_id, type=type, title=title, message=f"{title} message",
                                        read=read, data={}, **fields)
            db.session.add(notification)
            db.session.commit()
            return notification.id

    return factory


@pytest.fixture
def admin(make_user):
    return make_user('admin', email='admin@example.com')


@pytest.fixture
def manager(make_user):
    return make_user('manager', email='manager@example.com', full_name='Mary Manager')


@pytest.fixture
def owner(make_user):
    return make_user('user', email='owner@example.com', full_name='Oscar Owner')


# ---------------------- AUTH HELPERS ---------------------- #
@pytest.fixture
def auth_header(app):
    """Bearer header for a user id."""
    def factory(user_id, refresh=False):
        with app.app_context():
            if refresh:
                token = create_refresh_token(identity=str(user_id))
            else:
                token = create_access_token(identity=str(user_id))
        return {'Authorization': f'Bearer {token}'}

    return factory


@pytest.fixture
def fetch(app):
    """Load a fresh row (or rows) outside of any request."""
    def factory(model, id=None, **filters):
        with app.app_context():
            if id is not None:
                row = db.session.get(model, id)
                if row is not None:
                    db.session.expunge(row)
                return row
            rows = model.query.filter_by(**filters).all()
            for row in rows:
                db.session.expunge(row)
            return rows

    return factory
