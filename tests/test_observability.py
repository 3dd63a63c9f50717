"""Tests for logging filters and correlation ids."""

import json
import logging

from observability.logging import (
    CorrelationIDFilter,
    CustomJsonFormatter,
    SearchEventFormatter,
    SensitiveDataFilter,
    correlation_id_context,
    get_correlation_id,
)


def _record(msg="hello", args=None, **extra):
    record = logging.LogRecord("skinsourcing.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_correlation_context_sets_and_resets():
    assert get_correlation_id() is None
    with correlation_id_context("req-abc") as req_id:
        assert req_id == "req-abc"
        assert get_correlation_id() == "req-abc"
    assert get_correlation_id() is None


def test_correlation_context_generates_id():
    with correlation_id_context() as req_id:
        assert req_id.startswith("req-")


def test_correlation_filter_stamps_records():
    record = _record()
    with correlation_id_context("req-123"):
        CorrelationIDFilter().filter(record)
    assert record.correlation_id == "req-123"

    record = _record()
    CorrelationIDFilter().filter(record)
    assert record.correlation_id == "none"


def test_sensitive_data_is_redacted():
    record = _record("login %(provider)s", ({"api_key": "abc", "provider": "Steam"},), steam_login_secure="cookie")
    SensitiveDataFilter().filter(record)
    assert record.args == {"api_key": "[REDACTED]", "provider": "Steam"}
    assert record.getMessage() == "login Steam"
    assert record.steam_login_secure == "[REDACTED]"


def test_json_formatter_emits_service_fields():
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(logger)s %(correlation_id)s %(message)s")
    record = _record(provider_id="Skinport")
    CorrelationIDFilter().filter(record)

    payload = json.loads(formatter.format(record))
    assert payload["service"] == "skin-price-aggregator"
    assert payload["level"] == "INFO"
    assert payload["provider_id"] == "Skinport"
    assert payload["message"] == "hello"


def test_json_formatter_flattens_provider_event():
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(logger)s %(correlation_id)s %(message)s")
    record = _record(
        "Provider Steam completed",
        event="provider_complete",
        provider_id="Steam",
        status="ok",
        result_count=3,
        latency_ms=412.6634,
        error_message=None,
    )
    with correlation_id_context("req-789"):
        CorrelationIDFilter().filter(record)

    payload = json.loads(formatter.format(record))
    assert payload["event"] == "provider_complete"
    assert payload["provider_id"] == "Steam"
    assert payload["result_count"] == 3
    assert payload["latency_ms"] == 412.7
    assert payload["correlation_id"] == "req-789"
    assert "error_message" not in payload


def test_json_formatter_lifts_provider_counts_from_summary():
    formatter = CustomJsonFormatter("%(message)s")
    record = _record(
        "Search completed with provider failures",
        event="search_complete",
        results=4,
        providers={"called": 5, "succeeded": 3, "failed": 2, "details": []},
        latency_ms=950,
    )

    payload = json.loads(formatter.format(record))
    assert payload["providers_called"] == 5
    assert payload["providers_failed"] == 2
    assert payload["providers"]["succeeded"] == 3
    assert payload["latency_ms"] == 950.0


def test_text_formatter_appends_event_fields():
    formatter = SearchEventFormatter("%(levelname)s | %(message)s")
    record = _record(
        "Provider Waxpeer completed",
        event="provider_complete",
        provider_id="Waxpeer",
        status="timeout",
        result_count=0,
        latency_ms=9000.04,
        error_message="Timed out after 9.0s",
    )

    assert formatter.format(record) == (
        "INFO | Provider Waxpeer completed | event=provider_complete provider=Waxpeer "
        "status=timeout results=0 latency_ms=9000.0 error=Timed out after 9.0s"
    )


def test_text_formatter_renders_search_start_and_plain_records():
    formatter = SearchEventFormatter("%(message)s")
    start = _record("Search started", event="search_start", providers_resolved=["Steam", "Skinport"])
    assert formatter.format(start) == "Search started | event=search_start providers=Steam,Skinport"

    assert formatter.format(_record("plain line", provider_id="Steam")) == "plain line"
