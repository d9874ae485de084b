from __future__ import annotations

from prompt_evolution.core.errors import ConfigurationError
from prompt_evolution.domains.base import DomainPlugin

_registry: dict[str, DomainPlugin] = {}


def register_domain(plugin: DomainPlugin) -> None:
    _registry[plugin.name] = plugin


def get_domain(name: str) -> DomainPlugin:
    if name not in _registry:
        available = list(_registry.keys())
        raise ConfigurationError(f"Unknown domain {name!r}. Available: {available}")
    return _registry[name]


def list_domains() -> list[str]:
    return sorted(_registry.keys())


def _register_builtins() -> None:
    from prompt_evolution.domains.coe import COEDomain
    from prompt_evolution.domains.one_pager import OnePagerDomain
    from prompt_evolution.domains.prd import PRDDomain

    register_domain(PRDDomain())
    register_domain(OnePagerDomain())
    register_domain(COEDomain())


_register_builtins()
