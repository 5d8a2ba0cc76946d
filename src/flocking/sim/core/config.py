from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict

import yaml

EDGE_POLICIES = ("modulo", "snap")
_NUMBER_FIELDS = ("width", "height", "max_speed", "forward_drive", "cell_size", "time_step")
_INTEGER_FIELDS = ("agent_count", "seed")


class ConfigError(ValueError):
    """Raised when simulation tunables are out of their valid range."""


def _check_number(name: str, value: Any, integer: bool = False) -> None:
    kinds = (int,) if integer else (int, float)
    if isinstance(value, bool) or not isinstance(value, kinds):
        expected = "an integer" if integer else "a number"
        raise ConfigError(f"{name} must be {expected}, got {value!r}")


@dataclass
class RuleConfig:
    threshold: float
    factor: float


@dataclass
class AppearanceConfig:
    boid_base: float = 8.0
    boid_height: float = 13.0


@dataclass
class SimulationConfig:
    width: float = 1280.0
    height: float = 720.0
    agent_count: int = 700
    max_speed: float = 6.0
    forward_drive: float = 0.05
    cell_size: float = 150.0
    cohesion: RuleConfig = field(default_factory=lambda: RuleConfig(threshold=150.0, factor=600.0))
    alignment: RuleConfig = field(default_factory=lambda: RuleConfig(threshold=100.0, factor=75.0))
    separation: RuleConfig = field(default_factory=lambda: RuleConfig(threshold=10.0, factor=20.0))
    close_separation: RuleConfig = field(default_factory=lambda: RuleConfig(threshold=4.0, factor=2.0))
    # "modulo" keeps positions consistent with toroidal distances; "snap" jumps to the opposite edge.
    edge_policy: str = "modulo"
    seed: int = 42
    time_step: float = 1.0 / 60.0
    config_version: str = "v1"
    appearance: AppearanceConfig = field(default_factory=AppearanceConfig)

    @property
    def max_interaction_radius(self) -> float:
        return max(
            self.cohesion.threshold,
            self.alignment.threshold,
            self.separation.threshold,
            self.close_separation.threshold,
        )

    def rules(self) -> Dict[str, RuleConfig]:
        return {
            "cohesion": self.cohesion,
            "alignment": self.alignment,
            "separation": self.separation,
            "close_separation": self.close_separation,
        }

    def validate(self) -> "SimulationConfig":
        for name in _NUMBER_FIELDS:
            _check_number(name, getattr(self, name))
        for name in _INTEGER_FIELDS:
            _check_number(name, getattr(self, name), integer=True)
        for name, rule in self.rules().items():
            _check_number(f"{name}.threshold", rule.threshold)
            _check_number(f"{name}.factor", rule.factor)
        _check_number("appearance.boid_base", self.appearance.boid_base)
        _check_number("appearance.boid_height", self.appearance.boid_height)
        if self.width <= 0 or self.height <= 0:
            raise ConfigError(f"surface must have positive size, got {self.width}x{self.height}")
        if self.cell_size <= 0:
            raise ConfigError(f"cell_size must be positive, got {self.cell_size}")
        if self.agent_count < 1:
            raise ConfigError(f"agent_count must be a positive integer, got {self.agent_count}")
        if self.max_speed <= 0:
            raise ConfigError(f"max_speed must be positive, got {self.max_speed}")
        if self.forward_drive < 0:
            raise ConfigError(f"forward_drive must not be negative, got {self.forward_drive}")
        if self.edge_policy not in EDGE_POLICIES:
            raise ConfigError(f"edge_policy must be one of {EDGE_POLICIES}, got {self.edge_policy!r}")
        if self.time_step <= 0:
            raise ConfigError(f"time_step must be positive, got {self.time_step}")
        for name, rule in self.rules().items():
            if rule.threshold < 0:
                raise ConfigError(f"{name}.threshold must not be negative, got {rule.threshold}")
            if rule.factor <= 0:
                raise ConfigError(f"{name}.factor must be positive, got {rule.factor}")
        if self.appearance.boid_base <= 0 or self.appearance.boid_height <= 0:
            raise ConfigError("appearance glyph dimensions must be positive")
        return self

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


_RULE_KEYS = ("cohesion", "alignment", "separation", "close_separation")


def _to_float(name: str, value: Any) -> float:
    _check_number(name, value)
    return float(value)


def _rule(name: str, value: Any, default: RuleConfig) -> RuleConfig:
    if value is None:
        return default
    if isinstance(value, (tuple, list)):
        if len(value) != 2:
            raise ConfigError(f"{name} expects [threshold, factor], got {value!r}")
        return RuleConfig(threshold=_to_float(f"{name}.threshold", value[0]), factor=_to_float(f"{name}.factor", value[1]))
    if isinstance(value, dict):
        unknown = set(value) - {"threshold", "factor"}
        if unknown:
            raise ConfigError(f"unknown keys for {name}: {sorted(unknown)}")
        return RuleConfig(
            threshold=_to_float(f"{name}.threshold", value.get("threshold", default.threshold)),
            factor=_to_float(f"{name}.factor", value.get("factor", default.factor)),
        )
    raise ConfigError(f"{name} must be a mapping or a [threshold, factor] pair, got {value!r}")


def load_config(raw: dict) -> SimulationConfig:
    defaults = SimulationConfig()
    known = {f.name for f in fields(SimulationConfig)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigError(f"unknown configuration keys: {sorted(unknown)}")

    rules = {name: _rule(name, raw.get(name), getattr(defaults, name)) for name in _RULE_KEYS}
    appearance_raw = raw.get("appearance", {}) or {}
    try:
        appearance = AppearanceConfig(**appearance_raw)
    except TypeError as exc:
        raise ConfigError(f"invalid appearance block: {exc}") from exc
    sim_values = {k: v for k, v in raw.items() if k not in set(_RULE_KEYS) | {"appearance"}}
    config = SimulationConfig(appearance=appearance, **rules, **sim_values)
    return config.validate()
