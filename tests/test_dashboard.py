from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from reportdesk.addons.dashboard import time_windows, percentage, average_hours, describe_action

# A Wednesday
NOW = datetime(2026, 3, 18, 15, 0, 0)


def test_time_windows_start_week_on_sunday():
    day, week, month = time_windows(NOW)
    assert day == datetime(2026, 3, 18)
    assert week == datetime(2026, 3, 15)
    assert month == datetime(2026, 3, 1)


def test_time_windows_on_a_sunday():
    _, week, _ = time_windows(datetime(2026, 3, 15, 8, 30))
    assert week == datetime(2026, 3, 15)


def test_percentage():
    assert percentage(2, 5) == 40
    assert percentage(1, 3) == 33
    assert percentage(1, 8) == 13
    assert percentage(5, 8) == 63
    assert percentage(0, 0) == 0


def test_average_hours_skips_rows_without_timestamps():
    rows = [
        SimpleNamespace(created_at=NOW, approved_at=NOW + timedelta(hours=10)),
        SimpleNamespace(created_at=NOW, approved_at=None),
        SimpleNamespace(created_at=NOW, approved_at=NOW + timedelta(hours=3)),
    ]
    assert average_hours(rows) == 7
    assert average_hours([]) == 0


def test_average_hours_rounds_half_up():
    rows = [SimpleNamespace(created_at=NOW, approved_at=NOW + timedelta(hours=2, minutes=30))]
    assert average_hours(rows) == 3


@pytest.mark.parametrize('action,expected_type,expected_description', [
    ('Report approved', 'approval', 'Report approved'),
    ('Report rejected: march.xlsx', 'rejection', 'Report rejected'),
    ('Payment proof approved', 'approval', 'Payment proof approved'),
    ('Comment added: march.xlsx', 'comment', 'Comment added'),
])
def test_describe_action(action, expected_type, expected_description):
    log = SimpleNamespace(id=7, action=action, details={'reportId': 3}, created_at=NOW)
    described = describe_action(log)
    assert described == {
        'id': 7,
        'type': expected_type,
        'description': expected_description,
        'timestamp': NOW.isoformat(),
        'reportId': 3,
    }


class TestStats:

    @pytest.fixture
    def seeded(self, manager, owner, make_user, make_report, make_proof):
        make_user(is_active=False)
        make_report(owner, status='pending', total_amount=100, created_at=datetime(2026, 3, 18, 10))
        make_report(owner, status='processing', total_amount=20, created_at=datetime(2026, 3, 18, 9))
        make_report(owner, status='approved', total_amount=200, created_at=datetime(2026, 3, 16, 8),
                    approved_at=datetime(2026, 3, 16, 20))
        approved = make_report(owner, status='approved', total_amount=50, created_at=datetime(2026, 3, 10, 8),
                               approved_at=datetime(2026, 3, 10, 12))
        make_report(owner, status='rejected', total_amount=30, created_at=datetime(2026, 3, 5, 8))
        make_report(owner, status='approved', total_amount=1000, created_at=datetime(2026, 2, 20, 8),
                    approved_at=datetime(2026, 2, 21, 8))
        make_proof(approved, status='pending_approval')
        make_proof(approved, status='approved')

    def test_figures(self, app, services, seeded):
        with app.app_context():
            stats = services.dashboard.stats(now=NOW)

        assert stats == {
            'totalUsers': 2,
            'pendingPayments': 120.0,
            'totalPayments': 1400.0,
            'totalReports': 6,
            'pendingReports': 1,
            'pendingPaymentProofs': 1,
            'totalReportsToday': 2,
            'totalAmountToday': 120.0,
            'todaySubmissions': 2,
            'thisWeekAmount': 320.0,
            'approvalRate': 40,
            'rejectionRate': 20,
            'averageApprovalTime': 8,
        }

    def test_empty_database(self, client, manager, auth_header):
        resp = client.get('/api/manager/dashboard-stats', headers=auth_header(manager))

        assert resp.status_code == 200
        stats = resp.get_json()['stats']
        assert stats['approvalRate'] == 0
        assert stats['rejectionRate'] == 0
        assert stats['averageApprovalTime'] == 0
        assert stats['totalReports'] == 0
        assert stats['totalUsers'] == 1

    def test_failed_scan_yields_empty_rows(self, app, services):
        def unavailable():
            raise OperationalError('SELECT', {}, Exception('connection reset'))

        with app.app_context():
            rows = services.dashboard._gather({'ok': lambda: [1, 2], 'broken': unavailable})

        assert rows == {'ok': [1, 2], 'broken': []}

    def test_requires_reviewer(self, client, owner, auth_header):
        resp = client.get('/api/manager/dashboard-stats', headers=auth_header(owner))
        assert resp.status_code == 403


class TestPendingAndRecent:

    def test_pending_reports_include_owner(self, client, manager, owner, make_report, auth_header):
        older = make_report(owner, status='pending_approval', created_at=datetime(2026, 3, 1))
        newer = make_report(owner, status='pending', created_at=datetime(2026, 3, 2))
        make_report(owner, status='approved')

        resp = client.get('/api/manager/pending-reports', headers=auth_header(manager))

        assert resp.status_code == 200
        reports = resp.get_json()['reports']
        assert [r['id'] for r in reports] == [newer, older]
        assert reports[0]['user'] == {'id': owner, 'full_name': 'Oscar Owner', 'email': 'owner@example.com'}

    def test_recent_activity(self, client, manager, owner, make_report, make_proof, auth_header):
        decided = make_report(owner)
        waiting = make_report(owner, filename='april.xlsx')
        proof_id = make_proof(decided)
        headers = auth_header(manager)
        client.post('/api/manager/approve-report', headers=headers,
                    json={'reportId': decided, 'action': 'approve'})

        resp = client.get('/api/manager/recent-activity', headers=headers)

        assert resp.status_code == 200
        activity = resp.get_json()['activity']
        assert [r['id'] for r in activity['pendingReports']] == [waiting]
        assert activity['pendingReports'][0]['user']['id'] == owner
        assert [p['id'] for p in activity['pendingProofs']] == [proof_id]
        assert activity['recentActions'][0]['type'] == 'approval'
        assert activity['recentActions'][0]['reportId'] == decided
