"""Logging helpers."""

from unittest.mock import MagicMock

from src.utils.logger import get_client_ip, redact_sensitive_fields


def test_redacts_sensitive_fields():
    event = redact_sensitive_fields(
        None,
        "info",
        {"event": "Execution started", "input_data": {"ssn": "x"}, "agent_id": "a"},
    )

    assert event["input_data"] == "[redacted]"
    assert event["agent_id"] == "a"


def test_client_ip_prefers_forwarded_header():
    request = MagicMock()
    request.headers = {"x-forwarded-for": "203.0.113.9, 10.0.0.1"}

    assert get_client_ip(request) == "203.0.113.9"


def test_client_ip_falls_back_to_peer():
    request = MagicMock()
    request.headers = {}
    request.client.host = "10.0.0.5"

    assert get_client_ip(request) == "10.0.0.5"
