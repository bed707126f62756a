"""Tests for the probe engine — classification + HttpProber."""

from __future__ import annotations

import logging

import httpx
import pytest

from sitewatch.health.engine import CheckResult, HttpProber, Status, classify_status_code


class _StallingStream(httpx.SyncByteStream):
    """Body that yields one chunk and then times out."""

    def __iter__(self):
        yield b"<html>"
        raise httpx.ReadTimeout("read timed out")


def _prober(handler) -> HttpProber:
    return HttpProber(timeout_ms=1000, transport=httpx.MockTransport(handler))


# ── CheckResult ──────────────────────────────────────────────────────────────


class TestCheckResult:
    def test_auto_timestamp(self) -> None:
        r = CheckResult(target="https://a.test", status=Status.UP)
        assert r.timestamp  # auto-set
        assert "T" in r.timestamp

    def test_explicit_timestamp(self) -> None:
        r = CheckResult(
            target="https://a.test", status=Status.DOWN, timestamp="2025-01-01T00:00:00Z",
        )
        assert r.timestamp == "2025-01-01T00:00:00Z"

    def test_status_values(self) -> None:
        assert {s.value for s in Status} == {"up", "down", "error"}


# ── Classification ───────────────────────────────────────────────────────────


class TestClassifyStatusCode:
    @pytest.mark.parametrize("code", [200, 201, 204, 299])
    def test_success_range_is_up(self, code: int) -> None:
        assert classify_status_code(code) == Status.UP

    @pytest.mark.parametrize("code", [199, 300, 404, 500, 503])
    def test_outside_success_range_is_down(self, code: int) -> None:
        assert classify_status_code(code) == Status.DOWN


# ── HttpProber ───────────────────────────────────────────────────────────────


class TestHttpProber:
    def test_200_is_up(self) -> None:
        prober = _prober(lambda request: httpx.Response(200))
        result = prober.probe("https://a.test/")
        assert result.status == Status.UP
        assert result.status_code == 200
        assert result.target == "https://a.test/"
        assert result.latency_ms >= 0

    def test_404_is_down(self) -> None:
        prober = _prober(lambda request: httpx.Response(404))
        result = prober.probe("https://a.test/missing")
        assert result.status == Status.DOWN
        assert result.status_code == 404
        assert "404" in result.message

    def test_500_is_down(self) -> None:
        prober = _prober(lambda request: httpx.Response(500))
        assert prober.check("https://a.test/") == Status.DOWN

    def test_uses_get(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.method)
            return httpx.Response(200)

        _prober(handler).check("https://a.test/")
        assert seen == ["GET"]

    def test_follows_redirects(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://a.test/new"})
            return httpx.Response(200)

        assert _prober(handler).check("https://a.test/old") == Status.UP

    def test_redirect_not_followed_is_down(self) -> None:
        prober = HttpProber(
            follow_redirects=False,
            transport=httpx.MockTransport(
                lambda request: httpx.Response(302, headers={"Location": "https://a.test/x"}),
            ),
        )
        assert prober.check("https://a.test/") == Status.DOWN

    def test_connection_refused_is_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        result = _prober(handler).probe("https://a.test/")
        assert result.status == Status.ERROR
        assert result.status_code is None
        assert "ConnectError" in result.message

    def test_timeout_is_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = _prober(handler).probe("https://a.test/")
        assert result.status == Status.ERROR
        assert "Timed out" in result.message

    def test_transport_error_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Name or service not known", request=request)

        with caplog.at_level(logging.WARNING, logger="sitewatch.health.engine"):
            status = _prober(handler).check("https://nowhere.invalid/")

        assert status == Status.ERROR
        assert "Error checking https://nowhere.invalid/" in caplog.text

    def test_callable(self) -> None:
        prober = _prober(lambda request: httpx.Response(204))
        assert prober("https://a.test/") == Status.UP

    def test_broken_gzip_body_still_up(self) -> None:
        prober = _prober(lambda request: httpx.Response(
            200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip"),
        ))
        result = prober.probe("https://a.test/")
        assert result.status == Status.UP
        assert result.status_code == 200

    def test_body_stalling_mid_stream_still_up(self, caplog: pytest.LogCaptureFixture) -> None:
        prober = _prober(lambda request: httpx.Response(200, stream=_StallingStream()))

        with caplog.at_level(logging.WARNING, logger="sitewatch.health.engine"):
            status = prober.check("https://a.test/")

        assert status == Status.UP
        assert "Error checking" not in caplog.text

    def test_body_not_read_for_down(self) -> None:
        prober = _prober(lambda request: httpx.Response(503, stream=_StallingStream()))
        assert prober.check("https://a.test/") == Status.DOWN
