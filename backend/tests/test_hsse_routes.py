"""
HTTP tests for /api/hsse.

The app's dashboard service is swapped for one on the fixed clock so default
windows and overdue checks are deterministic.
"""

import pytest

from services.hsse.base import DashboardCancelledError, DashboardUnavailableError
from factories import twelve_hazards

OPS_2024 = "startDate=2024-01-01&endDate=2024-12-31&department=Operations"


@pytest.fixture
def service(app, dashboard_service):
    svc = dashboard_service()
    app.extensions['hsse_dashboard'] = svc
    return svc


class TestDashboardEndpoint:
    def test_report_shape(self, client, service, add_records):
        add_records(*twelve_hazards())
        response = client.get(f"/api/hsse/dashboard?{OPS_2024}")

        assert response.status_code == 200
        body = response.get_json()
        data, meta = body['data'], body['meta']

        assert data['schemaVersion'] == 'v2'
        assert data['filter']['startDate'] == '2024-01-01'
        assert data['filter']['department'] == 'Operations'
        assert data['hazardStatistics'] == {
            'status': 'ok', 'source': 'live', 'totalHazards': 12, 'nearMiss': 3, 'accidents': 2,
            'openCases': 5, 'closedCases': 7, 'completionRate': 58.33,
        }
        assert len(data['frequencyRates']['items']) == 6
        assert meta['cacheHit'] is False
        assert meta['cacheKey'].startswith('hsse:dashboard:v2|2024-01-01|2024-12-31|Operations|all|')
        assert meta['unavailable'] == []
        assert meta['requestId'] == response.headers['X-Request-ID']

    def test_second_request_is_cache_hit(self, client, service):
        first = client.get(f"/api/hsse/dashboard?{OPS_2024}").get_json()
        second = client.get(f"/api/hsse/dashboard?{OPS_2024}").get_json()

        assert second['meta']['cacheHit'] is True
        assert second['data'] == first['data']

    def test_no_cache_headers(self, client, service):
        response = client.get(f"/api/hsse/dashboard?{OPS_2024}")
        assert 'no-store' in response.headers['Cache-Control']

    def test_start_after_end_is_400(self, client, service):
        response = client.get("/api/hsse/dashboard?startDate=2024-12-31&endDate=2024-01-01")

        assert response.status_code == 400
        body = response.get_json()
        assert body['type'] == 'validation_error'
        assert body['field'] == 'startDate'

    def test_bad_date_is_400(self, client, service):
        response = client.get("/api/hsse/dashboard?endDate=yesterday")
        assert response.status_code == 400
        assert response.get_json()['field'] == 'endDate'

    def test_unavailable_is_503_retryable(self, client, service, monkeypatch):
        def raise_timeout(*args, **kwargs):
            raise DashboardUnavailableError("Dashboard aggregation timed out after 30s", reason='timeout')

        monkeypatch.setattr(service, 'handle_with_meta', raise_timeout)
        response = client.get("/api/hsse/dashboard")

        assert response.status_code == 503
        error = response.get_json()['error']
        assert error['code'] == 'SERVICE_UNAVAILABLE'
        assert error['retryable'] is True
        assert error['details'] == {'reason': 'timeout'}

    def test_cancelled_is_503(self, client, service, monkeypatch):
        def raise_cancelled(*args, **kwargs):
            raise DashboardCancelledError("Dashboard request cancelled")

        monkeypatch.setattr(service, 'handle_with_meta', raise_cancelled)
        response = client.get("/api/hsse/dashboard")
        assert response.status_code == 503
        assert response.get_json()['error']['code'] == 'REQUEST_CANCELLED'


class TestSectionEndpoints:
    def test_list_sections(self, client, service):
        sections = client.get("/api/hsse/sections").get_json()['sections']
        assert sections[0]['slot'] == 'hazard_statistics'
        assert len(sections) == 18

    def test_single_section(self, client, service, add_records):
        add_records(*twelve_hazards())
        response = client.get(f"/api/hsse/sections/case_status?{OPS_2024}")

        assert response.status_code == 200
        body = response.get_json()
        assert body['slot'] == 'case_status'
        assert body['data']['openPercentage'] == 41.67

    def test_unknown_section_is_404(self, client, service):
        response = client.get("/api/hsse/sections/nope")

        assert response.status_code == 404
        error = response.get_json()['error']
        assert error['code'] == 'UNKNOWN_SECTION'
        assert 'hazard_statistics' in error['details']['available']

    def test_unknown_route_uses_envelope(self, client, service):
        response = client.get("/api/hsse/nothing-here")
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'NOT_FOUND'


class TestAdminEndpoints:
    def test_rollup_status(self, client, service):
        body = client.get("/api/hsse/rollups/status").get_json()
        assert body['coverage'] == []
        assert body['slots_by_domain']['hazards'] == [
            'hazard_statistics', 'monthly_hazards', 'hazard_classifications', 'case_status',
        ]
        assert set(body['slots_by_domain']) == {'hazards', 'waste', 'security'}

    def test_cache_stats_and_clear(self, client, service):
        client.get(f"/api/hsse/dashboard?{OPS_2024}")
        assert client.get("/api/hsse/dashboard/cache").get_json()['size'] == 1

        response = client.delete("/api/hsse/dashboard/cache")
        assert response.get_json() == {'status': 'cleared'}
        assert client.get("/api/hsse/dashboard/cache").get_json()['size'] == 0

    def test_invalidate_one_report(self, client, service):
        client.get(f"/api/hsse/dashboard?{OPS_2024}")
        client.get("/api/hsse/dashboard?startDate=2024-01-01&endDate=2024-03-31")

        body = client.delete(f"/api/hsse/dashboard/cache?{OPS_2024}").get_json()
        assert body['status'] == 'invalidated'
        assert '|Operations|' in body['cache_key']
        assert client.get("/api/hsse/dashboard/cache").get_json()['size'] == 1

    def test_health(self, client):
        assert client.get("/api/health").get_json() == {'status': 'ok'}
