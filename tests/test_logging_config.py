"""
Tests for log redaction
"""

from observability.logging_config import REDACTED, get_logger, redact_secrets


class TestRedactSecrets:
    """Credentials never reach the rendered log line."""

    def test_sensitive_keys(self):
        event = redact_secrets(
            None,
            "info",
            {"event": "api_request", "authorization": "Basic dXNlcjpwdw==", "api_key": "k", "method": "GET"},
        )

        assert event == {
            "event": "api_request",
            "authorization": REDACTED,
            "api_key": REDACTED,
            "method": "GET",
        }

    def test_url_userinfo(self):
        event = redact_secrets(None, "info", {"event": "e", "url": "https://user:pw@api.example.com/x"})

        assert event["url"] == f"https://{REDACTED}@api.example.com/x"

    def test_nested_headers(self):
        event = redact_secrets(
            None,
            "info",
            {"event": "e", "headers": {"Authorization": "Bearer t", "Accept": "application/json"}},
        )

        assert event["headers"] == {"Authorization": REDACTED, "Accept": "application/json"}

    def test_event_name_untouched(self):
        assert redact_secrets(None, "info", {"event": "token_refreshed"})["event"] == "token_refreshed"


def test_get_logger_is_cached():
    assert get_logger("panel.test") is get_logger("panel.test")
