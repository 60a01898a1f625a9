"""网络工具测试"""

from __future__ import annotations

import threading

import pytest

from blockrepo.core.exceptions import OperationCancelledError, ValidationError
from blockrepo.utils.net import HttpResponse, check_cancelled, http_get, validate_url_scheme


class TestValidateUrlScheme:
    def test_https_ok(self) -> None:
        validate_url_scheme("https://example.com/api")

    def test_file_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            validate_url_scheme("file:///etc/passwd")

    def test_context_in_error(self) -> None:
        with pytest.raises(ValidationError, match="manifest"):
            validate_url_scheme("ftp://x", context="manifest")


class TestCancel:
    def test_check_cancelled(self) -> None:
        event = threading.Event()
        check_cancelled(None)
        check_cancelled(event)
        event.set()
        with pytest.raises(OperationCancelledError):
            check_cancelled(event)

    def test_http_get_cancelled_before_request(self) -> None:
        event = threading.Event()
        event.set()
        with pytest.raises(OperationCancelledError):
            http_get("https://example.com", cancel=event)

    def test_http_get_rejects_file_scheme(self) -> None:
        with pytest.raises(ValidationError):
            http_get("file:///etc/hosts")


class TestHttpResponse:
    def test_ok_range(self) -> None:
        assert HttpResponse(status=200).ok
        assert HttpResponse(status=204).ok
        assert not HttpResponse(status=304).ok
        assert not HttpResponse(status=404).ok

    def test_text(self) -> None:
        assert HttpResponse(status=200, body="中文".encode()).text() == "中文"
