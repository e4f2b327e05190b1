"""
One season's scene: roots, growth scheduler, leaves and ground.

A ``Scene`` is built in full and never partially reset. ``SceneController``
swaps in a freshly built scene on season change or resize, so a tick always
sees either the old scene or the complete new one.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from seasonal_tree.config import SEASON_PROFILES, SceneSettings, SeasonProfile, get_profile
from seasonal_tree.grammar import expand
from seasonal_tree.ground import HeightField
from seasonal_tree.growth import GrowthScheduler, GrowthState
from seasonal_tree.leaves import LeafField
from seasonal_tree.progress import ProgressSignal
from seasonal_tree.turtle import LayeredSegments, interpret

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RootState:
    length_mul: float
    thickness_mul: float
    iterations: int
    start: Tuple[float, float]


def randomize_roots(
    profile: SeasonProfile,
    settings: SceneSettings,
    width: float,
    height: float,
    rng: random.Random,
) -> List[RootState]:
    n = settings.root_count
    length_muls = [rng.uniform(*settings.length_mul_range) for _ in range(n)]
    thickness_muls = [rng.uniform(*settings.thickness_mul_range) for _ in range(n)]
    lo, hi = profile.lsystem.iteration_jitter
    iterations = [max(1, profile.lsystem.iterations + rng.randint(lo, hi)) for _ in range(n)]

    cell_width = width / settings.grid_cols
    roots = []
    for i in range(n):
        col = i % settings.grid_cols
        cx = col * cell_width + cell_width * 0.5
        jitter = cell_width * 0.2
        x = min(width - settings.margin, max(settings.margin, cx + rng.uniform(-jitter, jitter)))
        y = rng.uniform(height - settings.margin, height - 10)
        roots.append(RootState(length_muls[i], thickness_muls[i], iterations[i], (x, y)))
    return roots


def build_root(root: RootState, profile: SeasonProfile, settings: SceneSettings) -> LayeredSegments:
    sentence = expand(iterations=root.iterations)
    return interpret(
        sentence,
        root.start,
        profile,
        root.iterations,
        length_mul=root.length_mul,
        thickness_mul=root.thickness_mul,
        heading=-math.pi / 2,
        top_stop=settings.top_stop_margin,
    )


class Scene:
    def __init__(
        self,
        profile: SeasonProfile,
        width: float,
        height: float,
        settings: Optional[SceneSettings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.profile = profile
        self.settings = settings or SceneSettings()
        self.width = width
        self.height = height
        self.rng = rng or random.Random()
        self.frame = 0
        self.progress = 0.0

        self.ground = HeightField(profile.ground, height)
        self.roots = randomize_roots(profile, self.settings, width, height, self.rng)
        self.root_segments = [build_root(r, profile, self.settings) for r in self.roots]
        self.layered = LayeredSegments.merge(self.root_segments)
        self.growth = GrowthScheduler(self.layered, self.settings.grow_per_frame)
        self.leaves = LeafField(profile, self.settings, self.ground, width, height, self.rng)

    @property
    def state(self) -> GrowthState:
        return self.growth.state

    def tick(self, progress: float) -> None:
        """Advance one frame with the progress value read for this tick."""
        self.progress = min(1.0, max(0.0, progress))
        self.growth.sync(self.progress)
        for seg in self.growth.drain():
            self.leaves.scatter_along(seg)
        if self.growth.is_complete:
            self.leaves.backfill()
        self.leaves.update(self.frame)
        self.frame += 1

    def pointer_select(self, x: float, y: float) -> int:
        return self.leaves.pointer_select(x, y)

    def hud_lines(self) -> List[str]:
        return [
            self.profile.label,
            "Press 1-4 to change season",
            "Click leaves to make them fall",
            f"Progress: {self.progress * 100:.0f}%",
        ]


class SceneController:
    """Owns the live scene and rebuilds it atomically."""

    def __init__(
        self,
        width: float,
        height: float,
        season: str = "summer",
        settings: Optional[SceneSettings] = None,
        profiles: Optional[Dict[str, SeasonProfile]] = None,
        signal: Optional[ProgressSignal] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or SceneSettings()
        self.profiles = profiles or SEASON_PROFILES
        self.signal = signal or ProgressSignal()
        self.rng = rng or random.Random()
        self.width = width
        self.height = height
        self.profile = get_profile(season, self.profiles)
        self.scene = self._build(self.profile, width, height)

    @property
    def season(self) -> str:
        return self.profile.key

    def _build(self, profile: SeasonProfile, width: float, height: float) -> Scene:
        scene = Scene(profile, width, height, self.settings, self.rng)
        self.signal.reset()
        logger.info(
            "Built %s scene %dx%d: %d roots, %d layers, %d segments",
            profile.key,
            width,
            height,
            len(scene.roots),
            scene.growth.total_layers,
            scene.layered.segment_count,
        )
        return scene

    def select_season(self, key: str) -> None:
        profile = get_profile(key, self.profiles)
        scene = self._build(profile, self.width, self.height)
        self.profile, self.scene = profile, scene

    def resize(self, width: float, height: float) -> None:
        scene = self._build(self.profile, width, height)
        self.width, self.height, self.scene = width, height, scene

    def tick(self) -> Scene:
        scene = self.scene
        scene.tick(self.signal.read())
        return scene

    def pointer_select(self, x: float, y: float) -> int:
        return self.scene.pointer_select(x, y)
