from dataclasses import dataclass

from flask import current_app

from .identity import IdentityProvider
from .notification_store import NotificationStore
from .review_workflow import ReviewWorkflow
from .dashboard import DashboardAggregator

EXTENSION_KEY = 'reportdesk'


@dataclass
class Services:
    identity: IdentityProvider
    notifications: NotificationStore
    workflow: ReviewWorkflow
    dashboard: DashboardAggregator


def build_services(database, mailer, site_url):
    notifications = NotificationStore(database)
    return Services(
        identity=IdentityProvider(database, mailer, site_url),
        notifications=notifications,
        workflow=ReviewWorkflow(database, notifications),
        dashboard=DashboardAggregator(database),
    )


def get_services():
    """Service objects created once by the application factory."""
    return current_app.extensions[EXTENSION_KEY]
