from flask import jsonify, request
from flask_openapi3 import OpenAPI, Info
from flask_cors import CORS
from decouple import config
from datetime import timedelta
from dotenv import load_dotenv
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import urllib.parse
import logging

from reportdesk.addons.extensions import db, jwt, bcrypt
from reportdesk.addons.functions import jsonifyFormat, send_email
from reportdesk.addons.errors import AppError, BackendFailure
from reportdesk.addons.auth import register_jwt_callbacks
from reportdesk.addons.services import build_services, EXTENSION_KEY

# Import controllers
from reportdesk.controllers.auth.authentication import auth_bp
from reportdesk.controllers.admin.users import admin_bp
from reportdesk.controllers.manager.review import review_bp
from reportdesk.controllers.manager.dashboard import dashboard_bp
from reportdesk.controllers.notifications.notifications import notifications_bp

logger = logging.getLogger(__name__)

REDACTED_HEADERS = ('Authorization', 'Cookie')


def database_uri():
    """``DATABASE_URL`` when set, otherwise the MySQL URI built from the ``DB_*`` settings."""
    url = config('DATABASE_URL', default='')
    if url:
        return url

    db_password = config('DB_PASSWORD', default='password')
    db_user = config('DB_USERNAME', default='root')
    db_host = config('DB_HOST', default='localhost')
    db_name = config('DB_NAME', default='reportdesk')
    db_port = config('DB_PORT', default='3306')

    encoded_password = urllib.parse.quote_plus(db_password)
    return f'mysql+pymysql://{db_user}:{encoded_password}@{db_host}:{db_port}/{db_name}'


def validation_error(e):
    """Request-body validation failures, in the common envelope."""
    return jsonifyFormat({
        'success': False,
        'message': 'Invalid request',
        'errors': e.errors(include_url=False, include_context=False, include_input=False),
    }, 400)


def configure_logging(app):
    log_format = "%(asctime)s %(levelname)s: %(message)s"
    log_level = getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO)
    handlers = [logging.StreamHandler()]
    if app.config['LOG_FILE']:
        handlers.append(logging.FileHandler(app.config['LOG_FILE']))
    logging.basicConfig(level=log_level, format=log_format, handlers=handlers, force=True)

    if app.config['ENVIRONMENT'] == "Development" and not app.config.get('TESTING'):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)


def seed_admin(app):
    """Create the first admin account on an empty database."""
    from reportdesk.models import User

    if User.query.count() > 0:
        return
    email = app.config['SEED_ADMIN_EMAIL']
    password = app.config['SEED_ADMIN_PASSWORD']
    if not email or not password:
        logger.warning("No users exist and SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD are not set")
        return

    admin = User(email=email.strip().lower(), full_name='Administrator', role='admin', is_active=True)
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    logger.info(f"Seeded admin account {admin.email}")


def create_app(test_config=None):
    """
    Application factory for creating and configuring the Flask app
    """
    # Load environment variables FIRST
    load_dotenv()

    # Define the Info object for OpenAPI
    info = Info(
        title="Report Desk API",
        version="1.0.0",
        description="Review and approval of user-submitted reports and payment proofs"
    )

    jwt_scheme = {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
    cookie_scheme = {"type": "apiKey", "in": "cookie", "name": "access_token_cookie"}
    security_schemes = {
        "jwt": jwt_scheme,
        "cookie": cookie_scheme,
    }

    # Create OpenAPI app instance
    app = OpenAPI(
        __name__,
        info=info,
        security_schemes=security_schemes,
        validation_error_status=400,
        validation_error_callback=validation_error,
    )

    app.config['ENVIRONMENT'] = config('ENVIRONMENT', default='Development')
    app.config['SITE_URL'] = config('SITE_URL', default='http://localhost:3000')
    app.config['LOG_FILE'] = config('LOG_FILE', default='app.log')
    app.config['LOG_LEVEL'] = config('LOG_LEVEL', default='INFO')
    app.config['SEED_ADMIN_EMAIL'] = config('SEED_ADMIN_EMAIL', default='')
    app.config['SEED_ADMIN_PASSWORD'] = config('SEED_ADMIN_PASSWORD', default='')

    # Database configuration
    app.config['SQLALCHEMY_DATABASE_URI'] = database_uri()
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # JWT Configuration
    app.secret_key = config("SECRET_KEY", default="change-me-in-production")
    app.config["JWT_SECRET_KEY"] = config("JWT_SECRET_KEY", default=app.secret_key)
    app.config["JWT_TOKEN_LOCATION"] = ["cookies", "headers"]
    app.config["JWT_ALGORITHM"] = "HS256"
    app.config["JWT_HEADER_NAME"] = "Authorization"
    app.config["JWT_HEADER_TYPE"] = "Bearer"
    app.config["JWT_COOKIE_SECURE"] = config("JWT_COOKIE_SECURE", default=False, cast=bool)
    app.config["JWT_COOKIE_CSRF_PROTECT"] = config("JWT_COOKIE_CSRF_PROTECT", default=True, cast=bool)
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(minutes=config("ACCESS_TOKEN_MINUTES", default=30, cast=int))
    app.config["JWT_REFRESH_TOKEN_EXPIRES"] = timedelta(days=config("REFRESH_TOKEN_DAYS", default=7, cast=int))

    if test_config:
        app.config.update(test_config)

    if not app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
            'pool_pre_ping': True,
            'pool_recycle': 3600,
            'pool_size': 10,
            'max_overflow': 20,
        }

    # Enable CORS
    CORS(app, supports_credentials=True)

    configure_logging(app)

    # Initialize extensions with app
    db.init_app(app)
    bcrypt.init_app(app)
    jwt.init_app(app)
    register_jwt_callbacks(jwt)

    app.extensions[EXTENSION_KEY] = build_services(db, send_email, app.config['SITE_URL'])

    # Request/Response logging middleware
    @app.before_request
    def log_request():
        """Log all incoming requests"""
        headers = {
            key: ('[redacted]' if key in REDACTED_HEADERS else value)
            for key, value in request.headers.items()
        }
        logger.debug(f"Method: {request.method}\nPath: {request.path}\nHeaders: {headers}")

    @app.after_request
    def log_response(response):
        """Log all outgoing responses"""
        if response.direct_passthrough:
            return response
        log_message = f"Response: {response.status_code}\n"
        if response.content_type and 'application/json' in response.content_type:
            log_message += f"Data: {response.get_data(as_text=True)[:500]}"  # Limit to 500 chars
        logger.debug(log_message)
        return response

    # Error handlers
    @app.errorhandler(AppError)
    def handle_app_error(error):
        if error.status_code >= 500:
            logger.error(f"{type(error).__name__}: {error}")
        return jsonifyFormat(error.to_dict(), error.status_code)

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        logger.exception("Unhandled database error")
        return jsonifyFormat(BackendFailure().to_dict(), 500)

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle method not allowed errors"""
        return jsonifyFormat({
            "success": False,
            "message": "Method not allowed",
        }, 405)

    @app.errorhandler(404)
    def not_found(error):
        """Handle not found errors"""
        return jsonifyFormat({
            "success": False,
            "message": "The requested resource was not found",
        }, 404)

    @app.errorhandler(500)
    def internal_server_error(error):
        """Handle internal server errors"""
        logger.error(f"Internal server error: {error}")
        return jsonifyFormat({
            "success": False,
            "message": "An internal server error occurred",
        }, 500)

    # Register all blueprints
    app.register_api(auth_bp)
    app.register_api(admin_bp)
    app.register_api(review_bp)
    app.register_api(dashboard_bp)
    app.register_api(notifications_bp)

    # Default route
    @app.route("/", methods=["GET"])
    def home():
        """API home route with available endpoints"""
        return jsonify({
            "message": "Welcome to the Report Desk API!",
            "version": "1.0.0",
            "status": "online",
            "endpoints": {
                "authentication": "/api/auth",
                "admin": "/api/admin",
                "manager": "/api/manager",
                "notifications": "/api/notifications",
                "docs": "/openapi",
            }
        })

    # Health check endpoint
    @app.route("/health", methods=["GET"])
    def health_check():
        """Health check endpoint for monitoring"""
        try:
            db.session.execute(text('SELECT 1'))
            db_status = "healthy"
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Database health check failed: {e}")
            db_status = "unhealthy"

        return jsonify({
            "status": "online",
            "database": db_status,
            "environment": app.config['ENVIRONMENT'],
        })

    # Create missing tables and the first admin account
    with app.app_context():
        db.create_all()
        logger.info(f"Tables in metadata: {list(db.metadata.tables.keys())}")
        if not app.config.get('TESTING'):
            seed_admin(app)

    return app
