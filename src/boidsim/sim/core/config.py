from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from ...errors import ConfigurationError

_NON_NEGATIVE_SETTINGS = {"move_speed", "vision_distance", "visual_scale"}


@dataclass
class SimulationSettings:
    move_speed: float = 100.0
    vision_distance: float = 100.0
    # display only; never feeds back into vision or movement
    visual_scale: float = 1.0
    separation_gain: float = 0.0
    cohesion_gain: float = 0.0
    alignment_gain: float = 1.0
    target_boid_count: int = 100
    paused: bool = False


@dataclass
class AppearanceConfig:
    color: tuple[float, float, float] = (0.25, 0.25, 0.75)
    sprite_size: tuple[float, float] = (10.0, 20.0)


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    world_width: float = 1600.0
    world_height: float = 900.0
    seed: int = 42
    config_version: str = "v1"
    settings: SimulationSettings = field(default_factory=SimulationSettings)
    appearance: AppearanceConfig = field(default_factory=AppearanceConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text())
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


def _build(cls: type, values: Any, section: str, **extra: Any) -> Any:
    if not isinstance(values, Mapping):
        raise ConfigurationError(section, "expected a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(section, f"unknown keys {unknown}")
    try:
        return cls(**values, **extra)
    except TypeError as exc:
        raise ConfigurationError(section, str(exc)) from exc


def load_config(raw: Mapping[str, Any] | None) -> SimulationConfig:
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigurationError("config document must be a mapping")

    def _tuple(key: str, value: Any, default: tuple[float, ...]) -> tuple[float, ...]:
        if value is None:
            return default
        if not isinstance(value, (tuple, list)) or len(value) != len(default):
            raise ConfigurationError("appearance", f"{key} must be a list of {len(default)} numbers")
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value):
            raise ConfigurationError("appearance", f"{key} must be a list of {len(default)} numbers")
        return tuple(float(v) for v in value)

    settings = _build(SimulationSettings, raw.get("settings", {}), "settings")
    settings = apply_settings_update(SimulationSettings(), asdict(settings))
    appearance_raw = raw.get("appearance", {})
    appearance = _build(AppearanceConfig, appearance_raw, "appearance")
    default_appearance = AppearanceConfig()
    appearance.color = _tuple("color", appearance_raw.get("color"), default_appearance.color)
    appearance.sprite_size = _tuple("sprite_size", appearance_raw.get("sprite_size"), default_appearance.sprite_size)
    sim_values = {k: v for k, v in raw.items() if k not in {"settings", "appearance"}}
    return _build(SimulationConfig, sim_values, "simulation", settings=settings, appearance=appearance)


def config_to_dict(config: SimulationConfig) -> dict[str, Any]:
    data = asdict(config)
    data["appearance"] = {key: list(value) for key, value in data["appearance"].items()}
    return data


def apply_settings_update(settings: SimulationSettings, values: Mapping[str, Any]) -> SimulationSettings:
    """Write ``values`` onto ``settings`` in place, coercing to each field's type.

    Nothing is written unless every value is valid, so a rejected update never
    leaves the record half-applied.
    """
    coerced: dict[str, Any] = {}
    for name, value in values.items():
        if not hasattr(settings, name) or name.startswith("_"):
            raise ConfigurationError(name, "unknown setting")
        current = getattr(settings, name)
        if isinstance(current, bool):
            if not isinstance(value, bool):
                raise ConfigurationError(name, "expected a boolean")
            coerced[name] = value
        elif isinstance(current, int):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(name, "expected an integer")
            if value < 0:
                raise ConfigurationError(name, "must not be negative")
            coerced[name] = value
        else:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(name, "expected a number")
            if not math.isfinite(value):
                raise ConfigurationError(name, "must be finite")
            if name in _NON_NEGATIVE_SETTINGS and value < 0:
                raise ConfigurationError(name, "must not be negative")
            coerced[name] = float(value)
    for name, value in coerced.items():
        setattr(settings, name, value)
    return settings
