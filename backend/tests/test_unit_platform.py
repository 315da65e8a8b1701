"""Settings, tokens, structured logging and storage helpers."""
import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from talentpulse.platform.brand import sanitize_hex_color
from talentpulse.platform.config import Settings, settings
from talentpulse.platform.logging import JsonFormatter
from talentpulse.platform.request_context import bound_request_id, get_request_id, reset_request_id, set_request_id
from talentpulse.platform.security import create_access_token, decode_access_token, is_service_role_token
from talentpulse.services import s3_service


class TestSettings:
    def test_feature_flags(self):
        flags = Settings(AWS_ACCESS_KEY_ID="key", AWS_SECRET_ACCESS_KEY="secret", PDF_BROWSER_ENABLED=False).feature_flags
        assert flags.s3_configured is True
        assert flags.browser_pdf_enabled is False

    def test_report_view_base_url_falls_back_to_backend(self):
        assert Settings(BACKEND_URL="http://api:8000/", REPORT_VIEW_BASE_URL=None).report_view_base_url == "http://api:8000"
        assert Settings(REPORT_VIEW_BASE_URL="  ").report_view_base_url == settings.BACKEND_URL.rstrip("/")
        assert Settings(REPORT_VIEW_BASE_URL="http://internal:8080").report_view_base_url == "http://internal:8080"


class TestBrandColours:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("#2d2e30", "#2D2E30"),
            ("  #ffba00  ", "#FFBA00"),
            ("#FFF", "#FFFFFF"),
            ("2D2E30", None),
            ("#GGG", None),
            ("#12345", None),
            ("red", None),
            ("#fff;}body{display:none", None),
            (None, None),
            (123, None),
        ],
    )
    def test_sanitize_hex_color(self, value, expected):
        assert sanitize_hex_color(value) == expected


class TestSecurity:
    def test_access_token_round_trip(self):
        assert decode_access_token(create_access_token("profile-1")) == "profile-1"

    def test_expired_token_is_rejected(self):
        assert decode_access_token(create_access_token("profile-1", expires_minutes=-5)) is None

    def test_garbage_token_is_rejected(self):
        assert decode_access_token("not-a-token") is None

    def test_service_role_token(self):
        assert is_service_role_token("test-service-role-key") is True
        assert is_service_role_token("wrong") is False
        assert is_service_role_token(None) is False

    def test_service_role_disabled_without_key(self):
        with patch.object(settings, "SERVICE_ROLE_KEY", ""):
            assert is_service_role_token("") is False
            assert is_service_role_token("anything") is False


class TestJsonFormatter:
    def _record(self, **extra):
        record = logging.LogRecord("talentpulse.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_structured_payload(self):
        payload = json.loads(JsonFormatter().format(self._record(assignment_id="a1", pages=3)))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "talentpulse.test"
        assert payload["message"] == "hello world"
        assert payload["assignment_id"] == "a1"
        assert payload["pages"] == 3

    def test_includes_request_id_from_context(self):
        token = set_request_id("req-42")
        try:
            payload = json.loads(JsonFormatter().format(self._record()))
        finally:
            reset_request_id(token)
        assert payload["request_id"] == "req-42"
        assert get_request_id() is None

    def test_bound_request_id_is_scoped_to_the_block(self):
        with bound_request_id("job-7"):
            assert json.loads(JsonFormatter().format(self._record()))["request_id"] == "job-7"
        assert get_request_id() is None
        with bound_request_id(None):
            assert get_request_id() is None


class TestS3Service:
    def test_report_pdf_key(self):
        assert s3_service.build_report_pdf_key("abc", 3) == "reports/abc/v3.pdf"

    def test_unconfigured_storage_returns_none(self):
        assert s3_service.upload_bytes(b"%PDF", "reports/abc/v1.pdf") is None
        assert s3_service.generate_presigned_url("reports/abc/v1.pdf") is None

    def test_upload_with_client(self):
        client = MagicMock()
        with patch.object(s3_service, "_get_client", return_value=(client, "bucket")):
            assert s3_service.upload_bytes(b"%PDF", "reports/abc/v1.pdf") == "reports/abc/v1.pdf"
        client.put_object.assert_called_once_with(
            Bucket="bucket", Key="reports/abc/v1.pdf", Body=b"%PDF", ContentType="application/pdf"
        )

    def test_upload_failure_returns_none(self):
        client = MagicMock()
        client.put_object.side_effect = RuntimeError("denied")
        with patch.object(s3_service, "_get_client", return_value=(client, "bucket")):
            assert s3_service.upload_bytes(b"%PDF", "k") is None

    def test_presigned_url_uses_configured_expiry(self):
        client = MagicMock()
        client.generate_presigned_url.return_value = "https://signed"
        with patch.object(s3_service, "_get_client", return_value=(client, "bucket")):
            assert s3_service.generate_presigned_url("k") == "https://signed"
        client.generate_presigned_url.assert_called_once_with(
            "get_object", Params={"Bucket": "bucket", "Key": "k"}, ExpiresIn=3600
        )
