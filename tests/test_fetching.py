from __future__ import annotations

import threading

import pytest
import requests

from speedread.errors import Cancelled, NetworkFailure
from speedread.fetching import DEFAULT_ACCEPT, DEFAULT_USER_AGENT, FetchResponse, RequestsFetcher

URL = "https://example.com/story"


class _FakeResponse:
    def __init__(self, status_code=200, blocks=(), content_type="text/html", encoding=None):
        self.status_code = status_code
        self.headers = {"Content-Type": content_type}
        self.encoding = encoding
        self._blocks = blocks
        self.closed = False
        self.consumed = False

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def iter_content(self, chunk_size=1):
        self.consumed = True
        for block in self._blocks:
            yield block() if callable(block) else block

    def close(self):
        self.closed = True


def _patch_get(monkeypatch, response=None, error=None):
    calls: list[dict[str, object]] = []

    def _fake_get(self, url, **kwargs):
        calls.append({"url": url, **kwargs})
        if error is not None:
            raise error
        return response

    monkeypatch.setattr(requests.Session, "get", _fake_get)
    return calls


def test_fetch_sends_reader_headers_and_streams(monkeypatch):
    response = _FakeResponse(blocks=[b"<p>Hello ", b"world</p>"], content_type="text/html; charset=utf-8", encoding="utf-8")
    calls = _patch_get(monkeypatch, response)

    result = RequestsFetcher(timeout=7).fetch(URL)

    assert result == FetchResponse(url=URL, status_code=200, text="<p>Hello world</p>")
    assert calls[0]["url"] == URL
    assert calls[0]["headers"] == {"User-Agent": DEFAULT_USER_AGENT, "Accept": DEFAULT_ACCEPT}
    assert calls[0]["headers"]["User-Agent"] == "Mozilla/5.0 (RSVP Speed Reader)"
    assert calls[0]["timeout"] == 7
    assert calls[0]["stream"] is True
    assert response.closed


def test_non_2xx_status_comes_back_without_body(monkeypatch):
    response = _FakeResponse(status_code=404, blocks=[b"not found"])
    _patch_get(monkeypatch, response)

    result = RequestsFetcher().fetch(URL)

    assert result == FetchResponse(url=URL, status_code=404, text="")
    assert not result.ok
    assert not response.consumed
    assert response.closed


def test_timeout_maps_to_network_failure(monkeypatch):
    _patch_get(monkeypatch, error=requests.Timeout("read timed out"))
    with pytest.raises(NetworkFailure) as excinfo:
        RequestsFetcher().fetch(URL)
    assert excinfo.value.message == f"Timed out fetching {URL}."
    assert excinfo.value.cors_likely is False
    assert excinfo.value.status_code == 500


def test_connection_error_is_flagged_cors_likely(monkeypatch):
    _patch_get(monkeypatch, error=requests.ConnectionError("refused"))
    with pytest.raises(NetworkFailure) as excinfo:
        RequestsFetcher().fetch(URL)
    assert excinfo.value.cors_likely is True
    assert excinfo.value.message == "Failed to fetch the URL."


def test_cancel_between_blocks_stops_reading(monkeypatch):
    cancel_event = threading.Event()

    def _second_block():
        cancel_event.set()
        return b"second"

    response = _FakeResponse(blocks=[b"first", _second_block, b"third"])
    _patch_get(monkeypatch, response)

    with pytest.raises(Cancelled):
        RequestsFetcher().fetch(URL, cancel_event)
    assert response.closed


def test_cancel_before_request_skips_network(monkeypatch):
    calls = _patch_get(monkeypatch, _FakeResponse(blocks=[b"x"]))
    cancel_event = threading.Event()
    cancel_event.set()
    with pytest.raises(Cancelled):
        RequestsFetcher().fetch(URL, cancel_event)
    assert calls == []


def test_declared_charset_is_used(monkeypatch):
    body = "<p>Café crème</p>".encode("iso-8859-1")
    response = _FakeResponse(
        blocks=[body],
        content_type="text/html; charset=ISO-8859-1",
        encoding="ISO-8859-1",
    )
    _patch_get(monkeypatch, response)

    assert RequestsFetcher().fetch(URL).text == "<p>Café crème</p>"


def test_charset_is_sniffed_from_meta_tag(monkeypatch):
    html = (
        '<html><head><meta charset="shift_jis"><title>記事</title></head>'
        "<body><p>今日は良い天気です。明日も晴れるでしょう。</p></body></html>"
    )
    response = _FakeResponse(blocks=[html.encode("shift_jis")], content_type="text/html")
    _patch_get(monkeypatch, response)

    text = RequestsFetcher().fetch(URL).text

    assert "今日は良い天気です。" in text
    assert "<title>記事</title>" in text
