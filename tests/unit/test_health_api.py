"""Tests for shared/api/health.py."""


class TestHealth:

    def test_root(self, client):
        data = client.get("/").json()
        assert data["status"] == "ok"
        assert data["service"] == "TP Supervision Service"

    def test_db_ok(self, client, mocker):
        manager = mocker.patch("shared.api.health.get_db_manager").return_value
        manager.health_check.return_value = True

        assert client.get("/health/db").json() == {"status": "ok", "database": "connected"}

    def test_db_down(self, client, mocker):
        manager = mocker.patch("shared.api.health.get_db_manager").return_value
        manager.health_check.return_value = False

        assert client.get("/health/db").json()["database"] == "connection_failed"
