"""Datasource registry: Build datasources by kind.

Kinds are registered with a factory taking a LedgerConfig. The kind
defaults to config.datasource.
"""

from __future__ import annotations

from typing import Callable

from perp_ledger.infrastructure.config import DEFAULT_CONFIG, LedgerConfig
from perp_ledger.infrastructure.datasources.base import Datasource
from perp_ledger.infrastructure.datasources.hyperliquid import HyperliquidDatasource
from perp_ledger.infrastructure.datasources.memory import InMemoryDatasource

DatasourceFactory = Callable[[LedgerConfig], Datasource]

_REGISTRY: dict[str, DatasourceFactory] = {}


def register_datasource(kind: str, factory: DatasourceFactory) -> None:
    """Register (or replace) the factory for a datasource kind."""
    _REGISTRY[kind] = factory


def available_datasources() -> list[str]:
    return sorted(_REGISTRY)


def get_datasource(kind: str | None = None, config: LedgerConfig | None = None) -> Datasource:
    """Create a datasource.

    Args:
        kind: Registered kind (defaults to config.datasource)
        config: Settings passed to the factory

    Raises:
        ValueError: If kind is not registered
    """
    config = config or DEFAULT_CONFIG
    kind = kind or config.datasource
    factory = _REGISTRY.get(kind)
    if factory is None:
        raise ValueError(
            f"Datasource '{kind}' not registered. Available: {', '.join(available_datasources())}"
        )
    return factory(config)


register_datasource("hyperliquid", lambda config: HyperliquidDatasource(config))
register_datasource(
    "memory",
    lambda config: InMemoryDatasource(tracked_users=config.tracked_users),
)
