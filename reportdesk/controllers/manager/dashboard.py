# controllers/manager/dashboard.py
from flask_openapi3 import APIBlueprint, Tag

from ...addons.auth import role_required
from ...addons.functions import jsonifyFormat
from ...addons.services import get_services
from ...models import REVIEWER_ROLES, AWAITING_REVIEW

dashboard_tag = Tag(name="Dashboard", description="Manager dashboard statistics and activity")
dashboard_bp = APIBlueprint(
    'dashboard', __name__, url_prefix='/api/manager', abp_tags=[dashboard_tag],
    abp_security=[{"jwt": []}, {"cookie": []}],
)


@dashboard_bp.get('/dashboard-stats')
@role_required(*REVIEWER_ROLES)
def get_dashboard_stats():
    """Get dashboard statistics"""
    stats = get_services().dashboard.stats()
    return jsonifyFormat({'success': True, 'stats': stats}, 200)


@dashboard_bp.get('/pending-reports')
@role_required(*REVIEWER_ROLES)
def get_pending_reports():
    """Reports awaiting review, with their owners"""
    reports = get_services().dashboard.pending_reports(AWAITING_REVIEW)
    return jsonifyFormat({'success': True, 'reports': reports}, 200)


@dashboard_bp.get('/recent-activity')
@role_required(*REVIEWER_ROLES)
def get_recent_activity():
    """Pending work and the latest review actions"""
    activity = get_services().dashboard.recent_activity()
    return jsonifyFormat({'success': True, 'activity': activity}, 200)
