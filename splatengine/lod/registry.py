"""
Global registry of LOD strategies.
"""

from dataclasses import dataclass, fields, replace
from typing import Callable, Dict, Type

from ..errors import InvalidInput
from .interface import LODMethod, LODStrategy


@dataclass
class StrategyEntry:
    """Entry in the strategy registry."""
    name: str
    factory: Callable[..., LODStrategy]
    config_class: Type
    description: str = ""
    # Multi-level generation seeds this strategy with the level number
    seed_per_level: bool = False


# Global registry
STRATEGIES: Dict[str, StrategyEntry] = {}


def register_strategy(
    name: str,
    factory: Callable[..., LODStrategy],
    config_class: Type,
    description: str = "",
    seed_per_level: bool = False,
) -> None:
    """Register a strategy."""
    STRATEGIES[name] = StrategyEntry(name, factory, config_class, description, seed_per_level)


def get_strategy_entry(method: "str | LODMethod") -> StrategyEntry:
    """
    Look up a registered strategy by name or LODMethod.

    Raises:
        InvalidInput: If no strategy is registered under that name.
    """
    name = method.value if isinstance(method, LODMethod) else str(method)
    if name not in STRATEGIES:
        raise InvalidInput(f"Unknown LOD method '{name}'. Available: {list(STRATEGIES.keys())}")
    return STRATEGIES[name]


def build_strategy(method: "str | LODMethod", config=None, **overrides) -> LODStrategy:
    """
    Build a strategy from its config, falling back to the config defaults.

    Args:
        method: Strategy name or LODMethod.
        config: Optional config instance of the strategy's config class.
        **overrides: Config fields to override. Fields the strategy's config
            does not declare are ignored.
    """
    entry = get_strategy_entry(method)
    if config is None:
        config = entry.config_class()
    known = {f.name for f in fields(entry.config_class)}
    overrides = {k: v for k, v in overrides.items() if k in known and v is not None}
    if overrides:
        config = replace(config, **overrides)
    return entry.factory(config)
