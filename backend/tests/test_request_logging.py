import logging

from flask import Flask, g, jsonify

from api.middleware.request_id import setup_request_id_middleware
from api.middleware.request_logging import RequestSampler, setup_request_logging_middleware


def _build_test_app(**config):
    app = Flask(__name__)
    app.config.update(config)

    @app.route("/api/hsse/dashboard", methods=["GET"])
    def dashboard():
        g.cache_hit = True
        return jsonify({"status": "ok"})

    @app.route("/api/hsse/sections", methods=["GET"])
    def sections():
        return jsonify({"sections": []})

    setup_request_id_middleware(app)
    setup_request_logging_middleware(app)
    app.config["TESTING"] = True
    return app


def test_request_logging_sample_rate(caplog):
    app = _build_test_app(REQUEST_LOG_ENABLED=True, REQUEST_LOG_SAMPLE_RATE=1.0, REQUEST_LOG_ENDPOINTS="")
    client = app.test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        response = client.get("/api/hsse/sections")

    assert response.status_code == 200
    assert any(
        "api_request path=/api/hsse/sections" in record.getMessage()
        for record in caplog.records
    )


def test_request_logging_watchlist_reports_cache_hit(caplog):
    app = _build_test_app(
        REQUEST_LOG_ENABLED=True,
        REQUEST_LOG_SAMPLE_RATE=0.0,
        REQUEST_LOG_ENDPOINTS="/api/hsse/dashboard",
    )
    client = app.test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        client.get("/api/hsse/dashboard", headers={"X-Request-ID": "req-123"})
        client.get("/api/hsse/sections")

    messages = [record.getMessage() for record in caplog.records]
    assert any(
        "path=/api/hsse/dashboard" in m and "cache_hit=True" in m and "request_id=req-123" in m
        for m in messages
    )
    assert not any("path=/api/hsse/sections" in m for m in messages)


def test_request_logging_disabled(caplog):
    app = _build_test_app(REQUEST_LOG_ENABLED=False, REQUEST_LOG_SAMPLE_RATE=1.0)
    client = app.test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        client.get("/api/hsse/sections")

    assert not any("api_request" in record.getMessage() for record in caplog.records)


def test_request_id_header_round_trip():
    app = _build_test_app(REQUEST_LOG_ENABLED=False)
    client = app.test_client()

    echoed = client.get("/api/hsse/sections", headers={"X-Request-ID": "abc"})
    generated = client.get("/api/hsse/sections")

    assert echoed.headers["X-Request-ID"] == "abc"
    assert len(generated.headers["X-Request-ID"]) == 36


def test_slow_requests_log_at_warning_even_when_unsampled(caplog):
    app = _build_test_app(
        REQUEST_LOG_ENABLED=True,
        REQUEST_LOG_SAMPLE_RATE=0.0,
        REQUEST_LOG_ENDPOINTS="",
        REQUEST_LOG_SLOW_MS=0,
    )
    client = app.test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        client.get("/api/hsse/sections")

    slow = [r for r in caplog.records if "path=/api/hsse/sections" in r.getMessage()]
    assert len(slow) == 1
    assert slow[0].levelno == logging.WARNING


def test_sampler_from_config():
    sampler = RequestSampler.from_config({
        "REQUEST_LOG_ENDPOINTS": " /api/hsse/dashboard, ,/api/hsse/rollups ",
        "REQUEST_LOG_SAMPLE_RATE": "7",
    })

    assert sampler.always == ("/api/hsse/dashboard", "/api/hsse/rollups")
    assert sampler.rate == 1.0
    assert sampler.wants("/api/hsse/rollups/status")


def test_sampler_bad_rate_means_never():
    sampler = RequestSampler.from_config({"REQUEST_LOG_SAMPLE_RATE": "often"})

    assert sampler.always == ()
    assert sampler.rate == 0.0
    assert not sampler.wants("/api/hsse/sections")
