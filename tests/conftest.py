import httpx
import pytest


@pytest.fixture
def restore_httpx_send(monkeypatch: pytest.MonkeyPatch) -> None:
    """Put httpx's original ``send`` methods back after a test installs the rewriter."""
    monkeypatch.setattr(httpx.Client, "send", httpx.Client.send)
    monkeypatch.setattr(httpx.AsyncClient, "send", httpx.AsyncClient.send)
