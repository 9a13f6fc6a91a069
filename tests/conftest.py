"""Pytest configuration and fixtures."""

import json

import aiohttp
import pytest


class FakeContent:
    def __init__(self, body: bytes, fail_after=None):
        self._body = body
        self._fail_after = fail_after

    async def iter_chunked(self, size):
        for start in range(0, len(self._body), size):
            if self._fail_after is not None and start >= self._fail_after:
                raise aiohttp.ClientPayloadError("connection reset mid-stream")
            yield self._body[start:start + size]


class FakeResponse:
    def __init__(self, body=b"", status=200, headers=None, fail_after=None, error=None):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.body = body
        self.status = status
        self.headers = headers if headers is not None else {"Content-Length": str(len(body))}
        self.content = FakeContent(body, fail_after)
        self.error = error

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self

    async def __aexit__(self, *args):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientError(f"HTTP {self.status}")

    async def text(self):
        return self.body.decode("utf-8")

    async def json(self, content_type=None):
        return json.loads(self.body.decode("utf-8"))


class FakeSession:
    """Minimal stand-in for aiohttp.ClientSession that records every GET."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []

    def add(self, url, body=b"", **kwargs):
        self.routes[url] = FakeResponse(body, **kwargs)

    def add_json(self, url, data):
        self.routes[url] = FakeResponse(json.dumps(data))

    def get(self, url, **kwargs):
        self.requests.append(url)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(b"not found", status=404)
        # jede Anfrage bekommt eine frische Antwort
        return FakeResponse(
            route.body,
            status=route.status,
            headers=route.headers,
            fail_after=route.content._fail_after,
            error=route.error,
        )

    async def close(self):
        pass


def post_fragment(post_id, inner=""):
    return f'<div class="yp-post" id="p{post_id}"><h3>Post {post_id}</h3>{inner}</div>'


def listing_page(fragments, page=None, total=None):
    pagination = ""
    if page is not None and total is not None:
        pagination = f'<span class="paginate-count">{page} / {total}</span>'
    return f"<html><body>{pagination}<div class='posts'>{''.join(fragments)}</div></body></html>"


@pytest.fixture
def session():
    return FakeSession()
