"""Outbound limit rewriting: pure URL rules plus httpx hook and send patches."""

from __future__ import annotations

import httpx
import pytest

from shuffle_fix.config import LimitsConfig, RewriteConfig, RuntimeConfig
from shuffle_fix.errors import RewriteError
from shuffle_fix.models import PatchStatus
from shuffle_fix.network.rewriter import (
    LimitRewriter,
    build_path_pattern,
    install_http_rewriter,
    rewrite_limit_url,
)


def _recording_transport(seen: list[str]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"collection": []})

    return httpx.MockTransport(handler)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        (
            "https://api.example.com/users/1/likes?limit=20&offset=0",
            "https://api.example.com/users/1/likes?limit=200&offset=0",
        ),
        (
            "https://api.example.com/me/tracks?offset=5&limit=50",
            "https://api.example.com/me/tracks?offset=5&limit=200",
        ),
        (
            "https://api.example.com/stream?limit=10&limit=30",
            "https://api.example.com/stream?limit=200",
        ),
    ],
)
def test_rewrite_raises_limit_on_collection_paths(url: str, expected: str) -> None:
    assert rewrite_limit_url(url, 200) == expected


@pytest.mark.parametrize(
    "url",
    [
        "https://api.example.com/users/1/likes?limit=500",
        "https://api.example.com/users/1/likes?limit=200",
        "https://api.example.com/users/1?limit=20",
        "https://example.com/likes?limit=20",
        "https://api.example.com/users/1/likes?offset=20",
        "https://api.example.com/users/1/likes?limit=abc",
        "https://api.example.com/users/1/likes?limit=",
    ],
)
def test_rewrite_leaves_other_urls_unchanged(url: str) -> None:
    assert rewrite_limit_url(url, 200) == url


def test_rewrite_keeps_other_query_segments_byte_identical() -> None:
    url = "https://api.example.com/tracks?ids=1,2&q=a%20b&sig=x:y&limit=20&cursor=a+b%2Fc"

    assert rewrite_limit_url(url, 200) == (
        "https://api.example.com/tracks?ids=1,2&q=a%20b&sig=x:y&limit=200&cursor=a+b%2Fc"
    )


def test_rewrite_ignores_non_string_input() -> None:
    assert rewrite_limit_url(None, 200) is None  # type: ignore[arg-type]


def test_custom_path_segments_and_marker() -> None:
    pattern = build_path_pattern(["/queue/"])

    assert (
        rewrite_limit_url("https://svc.test/queue?limit=1", 10, path_pattern=pattern, url_marker="svc")
        == "https://svc.test/queue?limit=10"
    )
    assert rewrite_limit_url("https://svc.test/likes?limit=1", 10, path_pattern=pattern, url_marker="svc") == (
        "https://svc.test/likes?limit=1"
    )


def test_build_path_pattern_requires_segments() -> None:
    with pytest.raises(RewriteError):
        build_path_pattern(["", "/"])


@pytest.mark.parametrize("ceiling", [0, -5, True, "200"])
def test_rewriter_rejects_invalid_ceiling(ceiling: object) -> None:
    with pytest.raises(RewriteError):
        LimitRewriter(ceiling)  # type: ignore[arg-type]


def test_rewriter_from_config() -> None:
    config = RuntimeConfig(
        limits=LimitsConfig(max_limit=120),
        rewrite=RewriteConfig(url_marker="svc", path_segments=("queue",)),
    )
    rewriter = LimitRewriter.from_config(config)

    assert rewriter.ceiling == 120
    assert rewriter.rewrite("https://svc.test/queue?limit=5") == "https://svc.test/queue?limit=120"
    assert rewriter.rewrite("https://api.test/likes?limit=5") == "https://api.test/likes?limit=5"


def test_rewrite_request_updates_url_and_counts() -> None:
    rewriter = LimitRewriter(200)
    request = httpx.Request("GET", "https://api.example.com/users/1/likes?limit=20")

    assert rewriter.rewrite_request(request) is request
    assert str(request.url) == "https://api.example.com/users/1/likes?limit=200"
    assert rewriter.rewrites == 1

    rewriter.rewrite_request(request)
    assert rewriter.rewrites == 1


def test_rewrite_request_fails_open() -> None:
    rewriter = LimitRewriter(200)
    broken = object()

    assert rewriter.rewrite_request(broken) is broken  # type: ignore[arg-type]
    assert rewriter.rewrites == 0


def test_attach_registers_single_request_hook() -> None:
    seen: list[str] = []
    rewriter = LimitRewriter(200)
    with httpx.Client(transport=_recording_transport(seen)) as client:
        rewriter.attach(client)
        rewriter.attach(client)
        assert client.event_hooks["request"] == [rewriter]

        client.get("https://api.example.com/users/1/likes", params={"limit": 20})

    assert seen == ["https://api.example.com/users/1/likes?limit=200"]


@pytest.mark.asyncio
async def test_attach_uses_async_hook_for_async_client() -> None:
    seen: list[str] = []
    rewriter = LimitRewriter(200)
    async with httpx.AsyncClient(transport=_recording_transport(seen)) as client:
        rewriter.attach(client)
        assert client.event_hooks["request"] == [rewriter.async_hook]

        await client.get("https://api.example.com/playlists/7?limit=50")

    assert seen == ["https://api.example.com/playlists/7?limit=200"]


@pytest.mark.usefixtures("restore_httpx_send")
def test_install_http_rewriter_patches_sync_client() -> None:
    seen: list[str] = []
    rewriter = LimitRewriter(200)

    results = install_http_rewriter(rewriter)

    assert [result.kind for result in results] == ["http_client", "http_async_client"]
    assert all(result.status is PatchStatus.APPLIED for result in results)
    with httpx.Client(transport=_recording_transport(seen)) as client:
        response = client.get("https://api.example.com/users/1/tracks?limit=20")
        client.get("https://cdn.example.com/users/1/tracks?limit=20")

    assert response.status_code == 200
    assert seen == [
        "https://api.example.com/users/1/tracks?limit=200",
        "https://cdn.example.com/users/1/tracks?limit=20",
    ]
    assert rewriter.rewrites == 1


@pytest.mark.asyncio
@pytest.mark.usefixtures("restore_httpx_send")
async def test_install_http_rewriter_patches_async_client() -> None:
    seen: list[str] = []
    install_http_rewriter(LimitRewriter(200))

    async with httpx.AsyncClient(transport=_recording_transport(seen)) as client:
        await client.get("https://api.example.com/users/1/favorites?limit=25")

    assert seen == ["https://api.example.com/users/1/favorites?limit=200"]


@pytest.mark.usefixtures("restore_httpx_send")
def test_install_http_rewriter_is_idempotent() -> None:
    seen: list[str] = []
    install_http_rewriter(LimitRewriter(200))

    results = install_http_rewriter(LimitRewriter(300))

    assert all(result.status is PatchStatus.SKIPPED for result in results)
    with httpx.Client(transport=_recording_transport(seen)) as client:
        client.get("https://api.example.com/users/1/likes?limit=20")
    assert seen == ["https://api.example.com/users/1/likes?limit=200"]
