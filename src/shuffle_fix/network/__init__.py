"""Outbound request rewriting contracts."""

from .rewriter import (
    DEFAULT_PATH_PATTERN,
    DEFAULT_URL_MARKER,
    LimitRewriter,
    build_path_pattern,
    install_http_rewriter,
    rewrite_limit_url,
)

__all__ = [
    "DEFAULT_PATH_PATTERN",
    "DEFAULT_URL_MARKER",
    "LimitRewriter",
    "build_path_pattern",
    "install_http_rewriter",
    "rewrite_limit_url",
]
