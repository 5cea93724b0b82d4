"""Raise pagination limits on outbound collection requests."""

from __future__ import annotations

from collections.abc import Callable, Iterable
import logging
import re
from typing import Any
from urllib.parse import unquote_plus, urlsplit, urlunsplit

import httpx

from shuffle_fix.config import DEFAULT_PATH_SEGMENTS, RuntimeConfig
from shuffle_fix.errors import RewriteError
from shuffle_fix.models import PatchResult
from shuffle_fix.patching.interceptor import install_patch

logger = logging.getLogger(__name__)

DEFAULT_URL_MARKER = "api"
LIMIT_PARAM = "limit"


def build_path_pattern(path_segments: Iterable[str] = DEFAULT_PATH_SEGMENTS) -> re.Pattern[str]:
    segments = [segment.strip("/") for segment in path_segments if segment.strip("/")]
    if not segments:
        raise RewriteError("At least one path segment is required.")
    return re.compile("/(?:" + "|".join(re.escape(segment) for segment in segments) + ")")


DEFAULT_PATH_PATTERN = build_path_pattern()


def rewrite_limit_url(
    url: str,
    ceiling: int,
    *,
    path_pattern: re.Pattern[str] = DEFAULT_PATH_PATTERN,
    url_marker: str = DEFAULT_URL_MARKER,
) -> str:
    """Return ``url`` with its ``limit`` query parameter raised to ``ceiling``.

    Only collection-like paths are touched and limits are never lowered.
    Every other query segment is kept byte for byte. Any parsing failure
    returns the original URL.
    """
    if not isinstance(url, str) or url_marker not in url:
        return url

    try:
        parts = urlsplit(url)
        if not path_pattern.search(parts.path):
            return url

        segments = parts.query.split("&")
        limit_index = next(
            (index for index, segment in enumerate(segments) if _query_key(segment) == LIMIT_PARAM),
            None,
        )
        if limit_index is None:
            return url
        if int(unquote_plus(segments[limit_index].partition("=")[2])) >= ceiling:
            return url

        rewritten: list[str] = []
        for index, segment in enumerate(segments):
            if index == limit_index:
                rewritten.append(f"{LIMIT_PARAM}={ceiling}")
            elif _query_key(segment) != LIMIT_PARAM:
                rewritten.append(segment)
        return urlunsplit(parts._replace(query="&".join(rewritten)))
    except ValueError as exc:
        logger.debug("Leaving request address unchanged (%s): %s", url, exc)
        return url


def _query_key(segment: str) -> str:
    return unquote_plus(segment.partition("=")[0])


class LimitRewriter:
    """Request rewriter usable as an httpx event hook or a ``send`` interceptor."""

    def __init__(
        self,
        ceiling: int,
        *,
        path_segments: Iterable[str] = DEFAULT_PATH_SEGMENTS,
        url_marker: str = DEFAULT_URL_MARKER,
    ) -> None:
        if isinstance(ceiling, bool) or not isinstance(ceiling, int) or ceiling <= 0:
            raise RewriteError("Rewrite ceiling must be a positive integer.")
        self._ceiling = ceiling
        self._path_pattern = build_path_pattern(path_segments)
        self._url_marker = url_marker
        self.rewrites = 0

    @classmethod
    def from_config(cls, config: RuntimeConfig) -> LimitRewriter:
        return cls(
            config.limits.max_limit,
            path_segments=config.rewrite.path_segments,
            url_marker=config.rewrite.url_marker,
        )

    @property
    def ceiling(self) -> int:
        return self._ceiling

    def rewrite(self, url: str) -> str:
        return rewrite_limit_url(
            url,
            self._ceiling,
            path_pattern=self._path_pattern,
            url_marker=self._url_marker,
        )

    def rewrite_request(self, request: httpx.Request) -> httpx.Request:
        try:
            original = str(request.url)
            rewritten = self.rewrite(original)
            if rewritten != original:
                request.url = httpx.URL(rewritten)
                self.rewrites += 1
                logger.debug("Raised pagination limit: %s -> %s", original, rewritten)
        except Exception as exc:
            logger.debug("Request rewrite skipped: %s", exc)
        return request

    def __call__(self, request: httpx.Request) -> None:
        self.rewrite_request(request)

    async def async_hook(self, request: httpx.Request) -> None:
        self.rewrite_request(request)

    def attach(self, client: httpx.Client | httpx.AsyncClient) -> None:
        """Register this rewriter as a request hook on one client."""
        hook: Callable[..., Any] = self.async_hook if isinstance(client, httpx.AsyncClient) else self
        hooks = {name: list(funcs) for name, funcs in client.event_hooks.items()}
        request_hooks = hooks.setdefault("request", [])
        if hook not in request_hooks:
            request_hooks.append(hook)
        client.event_hooks = hooks


def install_http_rewriter(rewriter: LimitRewriter) -> tuple[PatchResult, ...]:
    """Patch ``send`` on httpx's sync and async clients for the process lifetime."""

    def _build_sync(original: Callable[..., Any]) -> Callable[..., Any]:
        def send(client: httpx.Client, request: httpx.Request, *args: Any, **kwargs: Any) -> Any:
            rewriter.rewrite_request(request)
            return original(client, request, *args, **kwargs)

        return send

    def _build_async(original: Callable[..., Any]) -> Callable[..., Any]:
        async def send(client: httpx.AsyncClient, request: httpx.Request, *args: Any, **kwargs: Any) -> Any:
            rewriter.rewrite_request(request)
            return await original(client, request, *args, **kwargs)

        return send

    return (
        install_patch(httpx.Client, "send", _build_sync, target="httpx.Client.send", kind="http_client"),
        install_patch(
            httpx.AsyncClient,
            "send",
            _build_async,
            target="httpx.AsyncClient.send",
            kind="http_async_client",
        ),
    )
