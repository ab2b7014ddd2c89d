import sys
from pathlib import Path

import httpx
import pytest

# Allow `import startmarks` without installing the package.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _block_real_network(monkeypatch):
    """Tests must never reach a real icon provider."""

    def _blocked(*_args, **_kwargs):
        raise AssertionError("Real HTTP request attempted during tests")

    monkeypatch.setattr(httpx.HTTPTransport, "handle_request", _blocked)


PNG_2K = b"\x89PNG\r\n\x1a\n" + b"\x00" * 2040


def png_response(body: bytes = PNG_2K) -> httpx.Response:
    return httpx.Response(200, content=body, headers={"content-type": "image/png"})


@pytest.fixture
def mock_client():
    """Build an httpx.Client whose requests go to ``handler`` and are recorded in ``client.seen``."""
    clients = []

    def _make(handler):
        seen = []

        def _record(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return handler(request)

        client = httpx.Client(transport=httpx.MockTransport(_record))
        client.seen = seen
        clients.append(client)
        return client

    yield _make
    for c in clients:
        c.close()
