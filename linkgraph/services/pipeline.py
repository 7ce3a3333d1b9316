"""Priority-ordered provider registries with per-call error isolation.

Graph enrichment, and any other plugin point, registers providers here and
dispatches to them through :func:`call_isolated`, which records failures
instead of raising them.
"""

from __future__ import annotations

from dataclasses import dataclass
import inspect
import logging
from typing import Any, Callable, Dict, Generic, List, Optional, Protocol, Tuple, TypeVar

logger = logging.getLogger(__name__)


class RegistrationError(ValueError):
    """Raised when a provider cannot be registered."""


class Provider(Protocol):
    id: str
    priority: int


P = TypeVar("P", bound=Provider)


@dataclass
class ProviderFailure:
    """A provider callback that raised; collected, never re-raised."""

    provider_id: str
    error: Exception

    def __str__(self) -> str:
        return f"{self.provider_id}: {self.error}"


class Registration:
    """Handle returned by ``register``; disposing it removes the provider."""

    def __init__(self, on_dispose: Callable[[], None]):
        self._on_dispose: Optional[Callable[[], None]] = on_dispose

    @property
    def disposed(self) -> bool:
        return self._on_dispose is None

    def dispose(self) -> None:
        if self._on_dispose is not None:
            callback, self._on_dispose = self._on_dispose, None
            callback()

    def __enter__(self) -> "Registration":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()


class PriorityRegistry(Generic[P]):
    """Map of providers by id, listed by descending priority.

    Ties keep registration order. Not thread-safe; callers serialize
    registration.
    """

    kind = "provider"

    def __init__(self) -> None:
        self._providers: Dict[str, P] = {}

    def register(self, provider: P) -> Registration:
        provider_id = getattr(provider, "id", None)
        if not provider_id:
            raise RegistrationError(f"{self.kind.capitalize()} must have an id")
        if provider_id in self._providers:
            raise RegistrationError(
                f"{self.kind.capitalize()} with id '{provider_id}' is already registered"
            )

        self._providers[provider_id] = provider
        logger.debug("Registered %s", self.kind, extra={"provider_id": provider_id})

        def _remove() -> None:
            if self._providers.get(provider_id) is provider:
                del self._providers[provider_id]

        return Registration(_remove)

    def unregister(self, provider_id: str) -> bool:
        return self._providers.pop(provider_id, None) is not None

    def get(self, provider_id: str) -> Optional[P]:
        return self._providers.get(provider_id)

    def has(self, provider_id: str) -> bool:
        return provider_id in self._providers

    def ids(self) -> List[str]:
        return list(self._providers)

    def get_all(self) -> List[P]:
        return sorted(
            self._providers.values(),
            key=lambda provider: -(getattr(provider, "priority", 0) or 0),
        )

    def clear(self) -> None:
        self._providers.clear()

    def __len__(self) -> int:
        return len(self._providers)


async def call_isolated(
    provider_id: str,
    failures: List[ProviderFailure],
    func: Callable[..., Any],
    *args: Any,
) -> Tuple[bool, Any]:
    """Call a sync or async provider callback, capturing any exception.

    Returns ``(True, result)`` on success and ``(False, None)`` after
    recording the failure.
    """
    try:
        result = func(*args)
        if inspect.isawaitable(result):
            result = await result
    except Exception as exc:
        logger.warning(f"Provider '{provider_id}' failed: {exc}")
        failures.append(ProviderFailure(provider_id=provider_id, error=exc))
        return False, None
    return True, result


__all__ = [
    "PriorityRegistry",
    "Registration",
    "RegistrationError",
    "ProviderFailure",
    "call_isolated",
]
