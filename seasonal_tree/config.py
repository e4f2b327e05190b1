"""
Scene settings and per-season profiles.

Every simulation component receives the active ``SeasonProfile`` (and the
global ``SceneSettings``) explicitly; nothing here is looked up from ambient
state. Profiles are frozen and replaced wholesale on a season change.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Tuple

from seasonal_tree.errors import ConfigError

Color = Tuple[int, int, int]

SEASON_KEYS: Tuple[str, ...] = ("spring", "summer", "autumn", "winter")

# ground noise hashes 31-bit seeds
MAX_GROUND_SEED = 0x7FFFFFFF


@dataclass(frozen=True)
class SceneSettings:
    margin: float = 60.0
    root_count: int = 5
    grow_per_frame: int = 30
    grid_cols: int = 5
    top_stop_margin: float = 20.0
    along_leaf_min: int = 2
    along_leaf_max: int = 4
    max_place_tries: int = 8
    click_radius: float = 50.0
    ripple_probability: float = 0.6
    bulk_clear_clicks: int = 5
    leaf_size_min: float = 3.0
    leaf_size_max: float = 7.0
    backfill_jitter: Tuple[float, float] = (30.0, 20.0)
    length_mul_range: Tuple[float, float] = (0.85, 1.25)
    thickness_mul_range: Tuple[float, float] = (0.85, 1.3)
    frame_rate: float = 60.0

    @property
    def min_leaf_spacing(self) -> float:
        return (self.leaf_size_min + self.leaf_size_max) * 0.5


@dataclass(frozen=True)
class LSystemParams:
    iterations: int
    angle_deg: float
    base_len: float
    len_factor: float
    trunk_boost: float
    trunk_thick_boost: float
    # inclusive offsets applied to ``iterations`` per root
    iteration_jitter: Tuple[int, int] = (-1, 1)


@dataclass(frozen=True)
class ThicknessParams:
    start: float
    decay: float
    min: float


@dataclass(frozen=True)
class GroundParams:
    base_offset: float
    noise_amp: float
    noise_scale: float
    step: float
    seed: int


@dataclass(frozen=True)
class SeasonProfile:
    key: str
    label: str
    branch_color: Color
    leaf_color_min: Color
    leaf_color_max: Color
    background: Color
    leaf_count: int
    min_leaf_count: int
    backfill_per_frame: int
    along_leaf_radius: float
    lsystem: LSystemParams
    thickness: ThicknessParams
    ground: GroundParams

    @property
    def ground_color(self) -> Tuple[float, float, float, int]:
        r, g, b = self.branch_color
        return (r * 0.4, g * 0.4, b * 0.4, 200)


SEASON_PROFILES: Dict[str, SeasonProfile] = {
    "spring": SeasonProfile(
        key="spring",
        label="Spring",
        branch_color=(101, 67, 33),
        leaf_color_min=(144, 238, 144),
        leaf_color_max=(200, 255, 200),
        background=(240, 248, 255),
        leaf_count=3500,
        min_leaf_count=2500,
        backfill_per_frame=150,
        along_leaf_radius=35,
        lsystem=LSystemParams(
            iterations=3, angle_deg=25, base_len=85, len_factor=0.7,
            trunk_boost=1.6, trunk_thick_boost=1.2,
        ),
        thickness=ThicknessParams(start=5, decay=0.98, min=1),
        ground=GroundParams(base_offset=6, noise_amp=12, noise_scale=0.01, step=4, seed=1337),
    ),
    "summer": SeasonProfile(
        key="summer",
        label="Summer",
        branch_color=(63, 55, 54),
        leaf_color_min=(186, 73, 55),
        leaf_color_max=(229, 203, 193),
        background=(245, 240, 236),
        leaf_count=4000,
        min_leaf_count=3000,
        backfill_per_frame=200,
        along_leaf_radius=40,
        lsystem=LSystemParams(
            iterations=3, angle_deg=25, base_len=90, len_factor=0.7,
            trunk_boost=1.8, trunk_thick_boost=1.5,
        ),
        thickness=ThicknessParams(start=6, decay=0.975, min=1),
        ground=GroundParams(base_offset=8, noise_amp=10, noise_scale=0.01, step=4, seed=2024),
    ),
    "autumn": SeasonProfile(
        key="autumn",
        label="Autumn",
        branch_color=(139, 69, 19),
        leaf_color_min=(255, 140, 0),
        leaf_color_max=(255, 215, 100),
        background=(255, 248, 220),
        leaf_count=4500,
        min_leaf_count=3500,
        backfill_per_frame=220,
        along_leaf_radius=45,
        lsystem=LSystemParams(
            iterations=4, angle_deg=20, base_len=95, len_factor=0.72,
            trunk_boost=2.0, trunk_thick_boost=1.5,
            # keeps every root at 4 iterations or fewer
            iteration_jitter=(-1, 0),
        ),
        thickness=ThicknessParams(start=5.5, decay=0.977, min=0.9),
        ground=GroundParams(base_offset=5, noise_amp=15, noise_scale=0.012, step=4, seed=77),
    ),
    "winter": SeasonProfile(
        key="winter",
        label="Winter",
        branch_color=(105, 105, 105),
        leaf_color_min=(240, 240, 240),
        leaf_color_max=(255, 255, 255),
        background=(220, 230, 240),
        leaf_count=2000,
        min_leaf_count=1500,
        backfill_per_frame=80,
        along_leaf_radius=30,
        lsystem=LSystemParams(
            iterations=2, angle_deg=28, base_len=80, len_factor=0.68,
            trunk_boost=1.4, trunk_thick_boost=1.1,
            iteration_jitter=(-1, 0),
        ),
        thickness=ThicknessParams(start=4, decay=0.985, min=0.8),
        ground=GroundParams(base_offset=10, noise_amp=8, noise_scale=0.009, step=5, seed=512),
    ),
}


def get_profile(key: str, profiles: Dict[str, SeasonProfile] | None = None) -> SeasonProfile:
    table = SEASON_PROFILES if profiles is None else profiles
    if key not in SEASON_KEYS or key not in table:
        raise ConfigError(f"unknown season {key!r}; expected one of {', '.join(SEASON_KEYS)}")
    return table[key]


# -------------------------
# JSON overrides
# -------------------------


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_number(x: Any, path: str) -> float:
    _require(isinstance(x, (int, float)) and not isinstance(x, bool), f"{path} must be a number")
    return float(x)


def _as_int(x: Any, path: str) -> int:
    _require(isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer")
    return int(x)


def _as_color(x: Any, path: str) -> Color:
    _require(
        isinstance(x, (list, tuple)) and len(x) == 3,
        f"{path} must be a list of three integers",
    )
    channels = tuple(_as_int(c, f"{path}[{i}]") for i, c in enumerate(x))
    _require(all(0 <= c <= 255 for c in channels), f"{path} channels must be in 0..255")
    return channels  # type: ignore[return-value]


def _as_dict(x: Any, path: str) -> Dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return x


def _as_int_pair(x: Any, path: str) -> Tuple[int, int]:
    _require(isinstance(x, (list, tuple)) and len(x) == 2, f"{path} must be a list of two integers")
    lo, hi = (_as_int(v, f"{path}[{i}]") for i, v in enumerate(x))
    _require(lo <= hi, f"{path} must be ordered low to high")
    return (lo, hi)


# field annotation (a string under postponed evaluation) -> validator
_COERCERS = {
    "int": _as_int,
    "float": _as_number,
    "Color": _as_color,
    "Tuple[int, int]": _as_int_pair,
}


def _merge(base: Any, data: Dict[str, Any], path: str) -> Any:
    known = {f.name: f.type for f in fields(base) if f.name not in ("key", "label")}
    changes: Dict[str, Any] = {}
    for name, value in data.items():
        sub = f"{path}.{name}"
        _require(name in known, f"{sub} is not a configurable field")
        current = getattr(base, name)
        if hasattr(current, "__dataclass_fields__"):
            changes[name] = _merge(current, _as_dict(value, sub), sub)
        else:
            changes[name] = _COERCERS[known[name]](value, sub)
    return replace(base, **changes)


def profiles_from_json(data: Any) -> Dict[str, SeasonProfile]:
    """Merge a ``{season: {field: value}}`` mapping into the built-in profiles."""
    root = _as_dict(data, "profiles")
    merged = dict(SEASON_PROFILES)
    for key, overrides in root.items():
        _require(key in SEASON_KEYS, f"profiles.{key} is not a known season")
        profile = _merge(SEASON_PROFILES[key], _as_dict(overrides, f"profiles.{key}"), key)
        lsys = profile.lsystem
        _require(
            1 <= lsys.iterations and lsys.iterations + lsys.iteration_jitter[1] <= 4,
            f"{key}.lsystem.iterations plus its jitter must stay within 1..4",
        )
        _require(profile.ground.step > 0, f"{key}.ground.step must be positive")
        _require(
            0 <= profile.ground.seed <= MAX_GROUND_SEED,
            f"{key}.ground.seed must be within 0..{MAX_GROUND_SEED}",
        )
        _require(
            profile.min_leaf_count <= profile.leaf_count,
            f"{key}.min_leaf_count must not exceed leaf_count",
        )
        merged[key] = profile
    return merged


def load_profiles(path: str | Path) -> Dict[str, SeasonProfile]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read profiles file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in {path}: {e}") from e
    return profiles_from_json(data)
