"""Shared fakes for the Google SDKs and HTTP."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest

from taffy.google.discovery import DISCOVERY_DOC_URL
from taffy.session.manager import GAPI_MODULE, GIS_MODULE

DISCOVERY_DOC = {
    "kind": "discovery#restDescription",
    "name": "calendar",
    "version": "v3",
    "rootUrl": "https://www.googleapis.com/",
    "servicePath": "calendar/v3/",
    "resources": {},
}


class FakeGapi:
    """Stands in for googleapiclient.discovery."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.builds = []
        self.service = MagicMock()

    def build_from_document(self, document, developerKey=None, credentials=None):
        if self.fail:
            raise ValueError("bad discovery document")
        self.builds.append(
            {"document": document, "developerKey": developerKey, "credentials": credentials}
        )
        return self.service


class FakeOAuthClient:
    """Stands in for authlib's AsyncOAuth2Client."""

    instances = []

    def __init__(self, client_id=None, scope=None, redirect_uri=None, **kwargs):
        self.client_id = client_id
        self.scope = scope
        self.redirect_uri = redirect_uri
        self.posts = []
        self.closed = False
        FakeOAuthClient.instances.append(self)

    def create_authorization_url(self, url, state=None, **kwargs):
        self.authorization_kwargs = kwargs
        return f"{url}?client_id={self.client_id}&response_type={kwargs.get('response_type')}", "state123"

    async def post(self, url, params=None, withhold_token=False, **kwargs):
        self.posts.append({"url": url, "params": params, "withhold_token": withhold_token})
        return httpx.Response(200)

    async def aclose(self):
        self.closed = True


def make_gis():
    return SimpleNamespace(AsyncOAuth2Client=FakeOAuthClient)


def make_importer(gapi=None, gis=None):
    """Importer returning fakes; a missing module raises ImportError."""
    modules = {}
    if gapi is not None:
        modules[GAPI_MODULE] = gapi
    if gis is not None:
        modules[GIS_MODULE] = gis

    def importer(name):
        if name not in modules:
            raise ImportError(f"No module named {name!r}")
        return modules[name]

    return importer


def discovery_transport(status: int = 200, body=None, content: bytes | None = None):
    """MockTransport serving the discovery document."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == DISCOVERY_DOC_URL
        if content is not None:
            return httpx.Response(status, content=content)
        return httpx.Response(status, json=DISCOVERY_DOC if body is None else body)

    return httpx.MockTransport(handler)


@pytest.fixture(autouse=True)
def _reset_fake_clients():
    FakeOAuthClient.instances.clear()
    yield
    FakeOAuthClient.instances.clear()
