"""Read-only credential table built once from settings."""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from .registry import PROVIDERS, ProviderConfig

if TYPE_CHECKING:
    from lexgate.core.config import Settings

_PLACEHOLDER_PREFIX_RE = re.compile(r"^your[_-]", re.IGNORECASE)


def is_usable_key(api_key: str | None, placeholders: frozenset[str] = frozenset()) -> bool:
    """A key counts only when non-blank and not a template placeholder."""
    if not api_key or not api_key.strip():
        return False
    key = api_key.strip()
    if _PLACEHOLDER_PREFIX_RE.match(key):
        return False
    return key not in placeholders


class CredentialTable:
    """Vendor id -> API key. Immutable after construction."""

    def __init__(
        self,
        keys: Mapping[str, str],
        registry: Mapping[str, ProviderConfig] = PROVIDERS,
    ) -> None:
        self._keys = MappingProxyType({k: (v or "").strip() for k, v in keys.items()})
        self._registry = registry

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        registry: Mapping[str, ProviderConfig] = PROVIDERS,
    ) -> "CredentialTable":
        return cls(settings.provider_api_keys, registry)

    def get(self, provider: str) -> str:
        return self._keys.get(provider, "")

    def is_configured(self, provider: str) -> bool:
        config = self._registry.get(provider)
        if config is None:
            return False
        return is_usable_key(self._keys.get(provider), config.placeholder_keys)

    def configured_ids(self) -> list[str]:
        """Configured vendors in registry order."""
        return [provider for provider in self._registry if self.is_configured(provider)]
