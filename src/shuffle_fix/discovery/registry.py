"""Read-only access to the host's loaded module registry."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
import sys
from typing import Any

from shuffle_fix.errors import RegistryUnavailableError

RegistryHandle = Mapping[str, Any] | Callable[[], Mapping[str, Any] | None] | None


class ModuleRegistry:
    """Iterable view over module objects held by a host registry mapping."""

    def __init__(self, modules: Mapping[str, Any], *, prefixes: Iterable[str] = ()) -> None:
        self._modules = modules
        self._prefixes = tuple(prefix for prefix in prefixes if prefix)

    @property
    def prefixes(self) -> tuple[str, ...]:
        return self._prefixes

    def iter_modules(self) -> Iterator[tuple[str, Any]]:
        """Yield ``(name, module)`` pairs from a snapshot of the registry."""
        try:
            snapshot = list(self._modules.items())
        except Exception as exc:
            raise RegistryUnavailableError(f"Could not read module registry: {exc}") from exc

        for name, module in snapshot:
            if module is None:
                continue
            if not self._accepts(str(name)):
                continue
            yield str(name), module

    def __len__(self) -> int:
        return sum(1 for _ in self.iter_modules())

    def _accepts(self, name: str) -> bool:
        if not self._prefixes:
            return True
        return any(name == prefix or name.startswith(f"{prefix}.") for prefix in self._prefixes)


def open_registry(handle: RegistryHandle = None, *, prefixes: Iterable[str] = ()) -> ModuleRegistry:
    """Resolve a registry handle; ``None`` means the interpreter's ``sys.modules``."""
    modules = _resolve_handle(handle)
    if modules is None:
        raise RegistryUnavailableError("Host module registry is not available.")
    if not isinstance(modules, Mapping):
        raise RegistryUnavailableError(
            f"Host module registry must be a mapping, got {type(modules).__name__}."
        )
    return ModuleRegistry(modules, prefixes=prefixes)


def _resolve_handle(handle: RegistryHandle) -> Any:
    if handle is None:
        return sys.modules
    if isinstance(handle, Mapping):
        return handle
    if callable(handle):
        try:
            return handle()
        except Exception as exc:
            raise RegistryUnavailableError(f"Host module registry lookup failed: {exc}") from exc
    return handle
