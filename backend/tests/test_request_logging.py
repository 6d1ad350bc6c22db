import logging

from flask import Flask, jsonify

from api.middleware.request_id import setup_request_id_middleware
from api.middleware.request_logging import setup_request_logging_middleware


def _build_test_app():
    app = Flask(__name__)

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/admin/candidates/<candidate_id>/approve", methods=["POST"])
    def approve(candidate_id):
        return jsonify({"ok": True})

    setup_request_id_middleware(app)
    setup_request_logging_middleware(app)
    return app


def _logged(caplog, path):
    return [
        record.getMessage()
        for record in caplog.records
        if f"api_request path={path}" in record.getMessage()
    ]


def test_request_logging_sample_rate(monkeypatch, caplog):
    monkeypatch.setenv("REQUEST_LOG_ENABLED", "true")
    monkeypatch.setenv("REQUEST_LOG_SAMPLE_RATE", "1.0")
    monkeypatch.setenv("REQUEST_LOG_ENDPOINTS", "")

    app = _build_test_app()
    app.config["TESTING"] = True
    client = app.test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        response = client.get("/api/health")

    assert response.status_code == 200
    assert _logged(caplog, "/api/health")


def test_request_logging_watchlist(monkeypatch, caplog):
    monkeypatch.setenv("REQUEST_LOG_ENABLED", "true")
    monkeypatch.setenv("REQUEST_LOG_SAMPLE_RATE", "0.0")
    monkeypatch.setenv("REQUEST_LOG_ENDPOINTS", "/api/health")

    app = _build_test_app()
    app.config["TESTING"] = True
    client = app.test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        response = client.get("/api/health")

    assert response.status_code == 200
    assert _logged(caplog, "/api/health")


def test_unsampled_reads_are_not_logged(monkeypatch, caplog):
    monkeypatch.setenv("REQUEST_LOG_ENABLED", "true")
    monkeypatch.setenv("REQUEST_LOG_SAMPLE_RATE", "0.0")
    monkeypatch.setenv("REQUEST_LOG_ENDPOINTS", "")

    client = _build_test_app().test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        client.get("/api/health")

    assert not _logged(caplog, "/api/health")


def test_admin_writes_are_always_logged_with_actor(monkeypatch, caplog):
    monkeypatch.setenv("REQUEST_LOG_ENABLED", "true")
    monkeypatch.setenv("REQUEST_LOG_SAMPLE_RATE", "0.0")
    monkeypatch.setenv("REQUEST_LOG_ENDPOINTS", "")

    client = _build_test_app().test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        client.post("/api/admin/candidates/c-1/approve", headers={"X-Admin-Id": "admin-9"})

    messages = _logged(caplog, "/api/admin/candidates/c-1/approve")
    assert messages
    assert "method=POST" in messages[0]
    assert "actor=admin-9" in messages[0]


def test_logging_disabled(monkeypatch, caplog):
    monkeypatch.setenv("REQUEST_LOG_ENABLED", "false")

    client = _build_test_app().test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        client.post("/api/admin/candidates/c-1/approve")

    assert not _logged(caplog, "/api/admin/candidates/c-1/approve")
