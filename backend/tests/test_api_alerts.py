"""Tests for alerts API endpoints."""

import pytest
import uuid
from datetime import date
from decimal import Decimal

from wastewatch.models.alert import Alert, AlertType, Severity
from wastewatch.models.subscription import Frequency, Subscription, SubscriptionStatus


@pytest.fixture
def zombie_alert(db_session, sample_account):
    sub = Subscription(
        id=str(uuid.uuid4()), merchant="Gym", account_id=sample_account.id,
        amount=Decimal("40.00"), frequency=Frequency.monthly,
        first_seen=date(2024, 1, 1), last_seen=date(2024, 4, 1),
        status=SubscriptionStatus.zombie,
    )
    alert = Alert(
        id=str(uuid.uuid4()),
        alert_type=AlertType.zombie,
        severity=Severity.attention,
        title="Possible zombie subscription: Gym",
        message="Gym has not charged you in 50 days.",
        subscription_id=sub.id,
        dedup_key=f"zombie:{sub.id}:2024-04-01",
        event_date=date(2024, 5, 17),
        payload={"days_since": 50, "monthly_amount": 40.0},
    )
    db_session.add_all([sub, alert])
    db_session.commit()
    return alert


class TestAlertsAPI:
    """Test alerts endpoints."""

    def test_list_alerts_empty(self, client):
        """Should return empty list."""
        response = client.get("/api/v1/alerts")
        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["unread_count"] == 0

    def test_list_alerts_with_data(self, client, zombie_alert):
        response = client.get("/api/v1/alerts")
        assert response.status_code == 200
        data = response.json()
        assert len(data["items"]) == 1
        item = data["items"][0]
        assert item["alert_type"] == "zombie"
        assert item["severity"] == "attention"
        assert item["payload"]["days_since"] == 50
        assert item["event_date"] == "2024-05-17"

    def test_filter_by_type(self, client, zombie_alert):
        response = client.get("/api/v1/alerts", params={"type": "duplicate"})
        assert response.status_code == 200
        assert response.json()["items"] == []

    def test_get_unread_count(self, client, zombie_alert):
        response = client.get("/api/v1/alerts/unread-count")
        assert response.status_code == 200
        assert response.json()["count"] == 1

    def test_mark_read(self, client, zombie_alert):
        response = client.patch(f"/api/v1/alerts/{zombie_alert.id}", json={"is_read": True})
        assert response.status_code == 200
        assert response.json()["is_read"] is True

    def test_dismiss_and_restore(self, client, zombie_alert):
        response = client.patch(f"/api/v1/alerts/{zombie_alert.id}", json={"dismissed": True})
        assert response.status_code == 200
        assert response.json()["dismissed"] is True
        assert response.json()["dismissed_at"] is not None
        assert client.get("/api/v1/alerts").json()["items"] == []

        response = client.post(f"/api/v1/alerts/{zombie_alert.id}/restore")
        assert response.status_code == 200
        assert response.json()["dismissed"] is False

    def test_dismiss_exclude(self, client, db_session, zombie_alert):
        response = client.post(f"/api/v1/alerts/{zombie_alert.id}/dismiss-exclude")
        assert response.status_code == 200

        sub = db_session.query(Subscription).one()
        assert sub.status == SubscriptionStatus.excluded

    def test_dismiss_exclude_without_subscription(self, client, db_session):
        alert = Alert(
            id=str(uuid.uuid4()), alert_type=AlertType.spending_anomaly, severity=Severity.warning,
            title="Dining spending up", message="m", dedup_key="spending_anomaly:x:2024-05",
        )
        db_session.add(alert)
        db_session.commit()

        response = client.post(f"/api/v1/alerts/{alert.id}/dismiss-exclude")
        assert response.status_code == 400

    def test_update_missing_alert(self, client):
        response = client.patch("/api/v1/alerts/missing", json={"is_read": True})
        assert response.status_code == 404

    def test_mark_all_read(self, client, zombie_alert):
        response = client.post("/api/v1/alerts/mark-all-read")
        assert response.status_code == 200
        assert response.json()["marked_read"] == 1

    def test_delete_alert(self, client, zombie_alert):
        response = client.delete(f"/api/v1/alerts/{zombie_alert.id}")
        assert response.status_code == 200
        assert client.delete(f"/api/v1/alerts/{zombie_alert.id}").status_code == 404

    def test_prune(self, client, zombie_alert):
        response = client.post("/api/v1/alerts/prune", json={"older_than_days": 30})
        assert response.status_code == 200
        # Open alerts are never pruned
        assert response.json()["deleted"] == 0


class TestDetectionSettingsAPI:

    def test_get_settings_creates_defaults(self, client):
        response = client.get("/api/v1/alerts/settings")
        assert response.status_code == 200
        data = response.json()
        assert data["min_occurrences"] == 2
        assert data["alerts_enabled"] is True

    def test_update_settings(self, client, detection_settings):
        response = client.patch("/api/v1/alerts/settings", json={"anomaly_percent_threshold": 50})
        assert response.status_code == 200
        assert response.json()["anomaly_percent_threshold"] == 50.0
        assert response.json()["tip_ceiling_percent"] == 25.0

    def test_rejects_invalid_settings(self, client, detection_settings):
        response = client.patch("/api/v1/alerts/settings", json={"min_occurrences": 1})
        assert response.status_code == 422
