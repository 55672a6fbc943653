"""Ordered registry of recognition providers.

The registry is built once at startup.  Each entry records the provider,
its priority (position in the configured order) and whether it is
enabled; enablement combines the feature flag from settings with the
provider's own ``is_available()`` check and is never re-evaluated.  A
disabled entry stays visible to the health endpoints but is invisible to
the decision engine: it is skipped and never consumes attempt budget.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from src.interfaces.ocr_provider import IOCRProvider
from src.utils.logging import get_logger

_logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderEntry:
    provider: IOCRProvider
    priority: int
    enabled: bool
    disabled_reason: str | None = None

    @property
    def name(self) -> str:
        return self.provider.get_provider_name()


class ProviderRegistry:
    """Immutable, priority-ordered list of providers (primary first)."""

    def __init__(self, entries: Iterable[ProviderEntry]) -> None:
        self._entries: tuple[ProviderEntry, ...] = tuple(
            sorted(entries, key=lambda entry: entry.priority)
        )

    @classmethod
    def from_providers(
        cls,
        providers: Sequence[IOCRProvider],
        disabled: dict[str, str] | None = None,
    ) -> ProviderRegistry:
        """Build a registry from providers in priority order.

        Args:
            providers: Providers, primary first.
            disabled: Provider name -> reason, for providers switched off by
                configuration.  Providers not listed are enabled when
                ``is_available()`` returns ``True``.
        """
        disabled = disabled or {}
        entries: list[ProviderEntry] = []
        for priority, provider in enumerate(providers):
            name = provider.get_provider_name()
            reason = disabled.get(name)
            if reason is None:
                try:
                    available = provider.is_available()
                except Exception as exc:
                    available = False
                    reason = f"availability check failed: {exc}"
                else:
                    if not available:
                        reason = "not configured"
            entries.append(
                ProviderEntry(
                    provider=provider,
                    priority=priority,
                    enabled=reason is None,
                    disabled_reason=reason,
                )
            )
            if reason is not None:
                _logger.info("ocr_provider_disabled", provider=name, reason=reason)

        registry = cls(entries)
        _logger.info("ocr_registry_built", enabled=registry.names())
        return registry

    def candidates(self) -> list[IOCRProvider]:
        """Enabled providers in priority order."""
        return [entry.provider for entry in self._entries if entry.enabled]

    def names(self) -> list[str]:
        return [entry.name for entry in self._entries if entry.enabled]

    def describe(self) -> list[dict[str, object]]:
        """Every entry, enabled or not, for health and provider listings."""
        return [
            {
                "name": entry.name,
                "priority": entry.priority,
                "enabled": entry.enabled,
                "disabled_reason": entry.disabled_reason,
            }
            for entry in self._entries
        ]

    def __iter__(self) -> Iterator[ProviderEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        """Number of *enabled* providers."""
        return sum(1 for entry in self._entries if entry.enabled)
