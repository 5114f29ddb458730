"""Pytest configuration helpers.

Puts ``backend/`` on ``sys.path`` so tests can import the ``dreamdeck``
package regardless of how pytest is invoked, and provides an in-memory fake
of the FLUX API built on ``httpx.MockTransport``.
"""
import os
import sys

import httpx
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "backend"))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"fake-image-payload"

CONNECT_ERROR = "connect-error"


class FakeFlux:
    """Scripted FLUX service.

    ``statuses`` is consumed one item per status call; the last item repeats.
    Items are JSON dicts, ``httpx.Response`` objects, or ``CONNECT_ERROR``.
    Any GET for a ``.png`` path is answered with ``image``.
    """

    def __init__(self, statuses=None, *, job_id="abc", image=PNG_BYTES, image_type="image/png"):
        self.statuses = list(statuses or [{"status": "Pending"}])
        self.job_id = job_id
        self.image = image
        self.image_type = image_type
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            return httpx.Response(200, json={"id": self.job_id, "status": "Pending"})
        if request.url.path.endswith("/get_result"):
            item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            if item == CONNECT_ERROR:
                raise httpx.ConnectError("connection refused", request=request)
            if isinstance(item, httpx.Response):
                return item
            return httpx.Response(200, json={"id": self.job_id, **item})
        if request.url.path.endswith(".png"):
            return httpx.Response(200, content=self.image, headers={"content-type": self.image_type})
        return httpx.Response(404, text="not found")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def submit_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    @property
    def status_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/get_result")]

    @property
    def download_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(".png")]


@pytest.fixture
def fake_flux():
    """Factory fixture: ``fake_flux([...statuses])``."""
    return FakeFlux
