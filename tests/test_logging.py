from photocap.logging import _redact, get_correlation_id, set_correlation_id


class TestRedaction:
    def test_secrets_fully_masked(self):
        event = _redact(
            None,
            "info",
            {"event": "x", "password": "Secret123", "jwt_secret": "abc", "token": "a.b.c"},
        )
        assert event["password"] == event["jwt_secret"] == event["token"] == "***"
        assert event["event"] == "x"

    def test_email_keeps_domain_only(self):
        event = _redact(None, "info", {"email": "ada@lens.io", "client_email": "bad"})
        assert event["email"] == "a***@lens.io"
        assert event["client_email"] == "***"

    def test_personal_fields_masked(self):
        event = _redact(None, "info", {"phone": "+15551234567", "date_of_birth": "2000-01-01"})
        assert event == {"phone": "***", "date_of_birth": "***"}

    def test_identifiers_untouched(self):
        event = _redact(None, "info", {"identity_id": "a1", "tenant": "admin"})
        assert event == {"identity_id": "a1", "tenant": "admin"}


def test_correlation_id_generated_when_missing():
    cid = set_correlation_id(None)
    assert cid and get_correlation_id() == cid
    assert set_correlation_id("req-1") == "req-1"
