"""
Tests for the HTTP routes.
"""

import pytest

from docmailer.mailer import DeliveryError
from docmailer.records import RecordTable
from docmailer.server import create_app
from docmailer.service import DispatchService


@pytest.fixture
def client(dispatch_service):
    app = create_app(dispatch_service)
    app.config["TESTING"] = True
    return app.test_client()


class TestDiscovery:
    def test_manifest(self, client):
        resp = client.get("/mcp")
        assert resp.status_code == 200
        tool = resp.get_json()["tools"][0]
        assert tool["name"] == "send_pdf_by_name"
        assert tool["inputSchema"]["required"] == ["pdf_name", "teacher_name", "teacher_email"]

    def test_cors_header(self, client):
        resp = client.get("/mcp", headers={"Origin": "https://automation.example.com"})
        assert resp.headers.get("Access-Control-Allow-Origin") == "*"

    def test_preflight_allows_any_origin(self, client):
        resp = client.options(
            "/mcp/tools/send_pdf_by_name",
            headers={
                "Origin": "https://hooks.example.net",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert resp.headers.get("Access-Control-Allow-Origin") == "*"


class TestSendByName:
    URL = "/mcp/tools/send_pdf_by_name"

    def test_json_body(self, client, valid_payload):
        resp = client.post(self.URL, json=valid_payload)
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["ok"] is True
        assert data["pdf_name"] == "Grade 1 Welcome Letter"
        assert data["pdf_link"] == "https://example.com/g1-welcome.pdf"
        assert data["email_id"].startswith("console-")

    def test_json_with_wrong_content_type(self, client):
        body = '{"pdf_name": "teacher protocol", "teacher_name": "Ben", "teacher_email": "ben@school.org"}'
        resp = client.post(self.URL, data=body, content_type="text/plain")
        assert resp.status_code == 200
        assert resp.get_json()["pdf_name"] == "Foundational Skills Teacher Protocol"

    def test_form_body(self, client):
        resp = client.post(self.URL, data={
            "pdf_name": "welcome letter",
            "teacher_name": "Ben",
            "teacher_email": "ben@school.org",
        })
        assert resp.status_code == 200

    def test_missing_fields(self, client):
        resp = client.post(self.URL, json={"customData": {"pdf_name": "welcome letter"}})
        data = resp.get_json()
        assert resp.status_code == 400
        assert data["ok"] is False
        assert data["resolved"] == {"pdf_name": "welcome letter", "teacher_name": None, "teacher_email": None}
        assert "hint" in data

    def test_unparseable_body(self, client):
        resp = client.post(self.URL, data="not json", content_type="application/json")
        assert resp.status_code == 400

    def test_not_found(self, client, valid_payload):
        valid_payload["customData"]["pdf_name"] = "pdf"
        resp = client.post(self.URL, json=valid_payload)
        data = resp.get_json()
        assert resp.status_code == 404
        assert data["message"] == "No PDF found for that pdf_name"
        assert data["reason"] == "query_too_short"

    def test_delivery_failure(self, tmp_path, sample_records, valid_payload, service_logger):
        class DownTransport:
            def send(self, email):
                raise DeliveryError("Resend rejected the email (401)")

        service = DispatchService(RecordTable(tmp_path / "x.csv", sample_records), DownTransport(), logger=service_logger)
        client = create_app(service).test_client()

        resp = client.post(self.URL, json=valid_payload)
        assert resp.status_code == 502
        assert resp.get_json()["error"] == "Resend rejected the email (401)"

    def test_unexpected_error_is_json_500(self, tmp_path, sample_records, valid_payload, service_logger):
        class BrokenTransport:
            def send(self, email):
                raise RuntimeError("boom")

        service = DispatchService(RecordTable(tmp_path / "x.csv", sample_records), BrokenTransport(), logger=service_logger)
        client = create_app(service).test_client()

        resp = client.post(self.URL, json=valid_payload)
        assert resp.status_code == 500
        assert resp.get_json() == {"ok": False, "message": "boom"}

    def test_get_not_allowed(self, client):
        resp = client.get(self.URL)
        assert resp.status_code == 405
        assert resp.get_json()["ok"] is False


class TestReloadAndHealth:
    def test_reload(self, table_csv, console_transport, service_logger):
        service = DispatchService(RecordTable(table_csv), console_transport, logger=service_logger)
        client = create_app(service).test_client()

        resp = client.get("/reload")
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True, "count": 3}

        health = client.get("/health").get_json()
        assert health["documents"] == 3
        assert health["generation"] == 1
        assert health["loaded_at"] is not None

    def test_reload_failure(self, tmp_path, console_transport, service_logger):
        service = DispatchService(RecordTable(tmp_path / "missing.csv"), console_transport, logger=service_logger)
        client = create_app(service).test_client()

        resp = client.get("/reload")
        assert resp.status_code == 500
        assert resp.get_json()["ok"] is False

    def test_health_before_load(self, client):
        data = client.get("/health").get_json()
        assert data["ok"] is True
        assert data["documents"] == 5
        assert data["generation"] == 0
        assert data["loaded_at"] is None
