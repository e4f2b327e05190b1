"""
Leaf particles: spaced placement, canopy backfill and falling physics.

Placement is rejection sampled against every existing leaf (O(n) per try,
O(n^2) for a full canopy). At the profile caps (<= ~4500 leaves) this stays
cheap because the distance test is one numpy pass over a packed position
buffer; a spatial grid would be needed well beyond that.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from seasonal_tree.config import SceneSettings, SeasonProfile
from seasonal_tree.ground import HeightField
from seasonal_tree.turtle import Segment

logger = logging.getLogger(__name__)

GRAVITY = 0.12
DRAG_X = 0.98
DRAG_Y = 0.99
WIND_FREQUENCY = 0.05
WIND_STRENGTH = 0.3
PLACE_JITTER = 2.0


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


@dataclass
class Leaf:
    x: float
    y: float
    radius: float
    color: Tuple[float, float, float]
    vx: float = 0.0
    vy: float = 0.0
    angle: float = 0.0
    spin: float = 0.0
    wind_seed: float = 0.0
    falling: bool = False
    # placed at the last candidate after every spacing try failed
    forced: bool = False

    def start_falling(self, rng: random.Random, force: bool = False) -> None:
        if self.falling and not force:
            return
        self.falling = True
        self.vx += rng.uniform(-0.5, 0.5)
        self.vy += rng.uniform(0.5, 1.2)

    def step(self, frame: int) -> None:
        """Integrate one tick of falling, without the ground test."""
        wind = math.sin((frame + self.wind_seed) * WIND_FREQUENCY) * WIND_STRENGTH
        self.vx = (self.vx + wind) * DRAG_X
        self.vy = (self.vy + GRAVITY) * DRAG_Y
        self.x += self.vx
        self.y += self.vy
        self.angle += self.spin

    def settle(self, ground_y: float) -> bool:
        """Come to rest if at or below ``ground_y``. Returns True if it landed."""
        if self.y < ground_y:
            return False
        self.y = ground_y
        self.falling = False
        self.vx = 0.0
        self.vy = 0.0
        return True


def lerp_color(lo, hi, amt: float) -> Tuple[float, float, float]:
    return tuple(a + (b - a) * amt for a, b in zip(lo, hi))  # type: ignore[return-value]


class LeafField:
    def __init__(
        self,
        profile: SeasonProfile,
        settings: SceneSettings,
        ground: HeightField,
        width: float,
        height: float,
        rng: random.Random,
    ):
        self.profile = profile
        self.settings = settings
        self.ground = ground
        self.width = width
        self.height = height
        self.rng = rng
        self.leaves: List[Leaf] = []
        self.click_count = 0
        self._spacing_sq = settings.min_leaf_spacing ** 2
        self._xy = np.empty((max(64, profile.leaf_count), 2), dtype=np.float64)

    def __len__(self) -> int:
        return len(self.leaves)

    # -------------------------
    # Placement
    # -------------------------

    def _is_clear(self, x: float, y: float) -> bool:
        n = len(self.leaves)
        if n == 0:
            return True
        d = self._xy[:n] - (x, y)
        return bool(np.all(np.einsum("ij,ij->i", d, d) >= self._spacing_sq))

    def add(self, leaf: Leaf) -> Leaf:
        n = len(self.leaves)
        if n >= len(self._xy):
            self._xy = np.concatenate([self._xy, np.empty_like(self._xy)])
        self._xy[n] = (leaf.x, leaf.y)
        self.leaves.append(leaf)
        return leaf

    def _new_leaf(self, x: float, y: float, forced: bool) -> Leaf:
        rng = self.rng
        s = self.settings
        p = self.profile
        return Leaf(
            x=x,
            y=y,
            radius=rng.uniform(s.leaf_size_min, s.leaf_size_max),
            color=lerp_color(p.leaf_color_min, p.leaf_color_max, rng.random()),
            vx=rng.uniform(-0.2, 0.2),
            vy=rng.uniform(-0.1, 0.1),
            angle=rng.uniform(0.0, math.tau),
            spin=rng.uniform(-0.02, 0.02),
            wind_seed=rng.uniform(0.0, 1000.0),
            forced=forced,
        )

    def try_place(self, px: float, py: float) -> Leaf:
        """Place a leaf near (px, py), keeping the minimum spacing if possible.

        After ``max_place_tries`` rejected candidates the leaf is placed at the
        last (clamped) candidate anyway; placement never fails.
        """
        rng = self.rng
        spacing = self.settings.min_leaf_spacing
        for _ in range(self.settings.max_place_tries):
            tx = _clamp(px + rng.uniform(-PLACE_JITTER, PLACE_JITTER), 0.0, self.width)
            ty = _clamp(py + rng.uniform(-PLACE_JITTER, PLACE_JITTER), 0.0, self.height)
            if self._is_clear(tx, ty):
                return self.add(self._new_leaf(tx, ty, forced=False))
            px += rng.uniform(-spacing, spacing)
            py += rng.uniform(-spacing, spacing)
        return self.add(
            self._new_leaf(_clamp(px, 0.0, self.width), _clamp(py, 0.0, self.height), forced=True)
        )

    def leaf_count_for(self, segment: Segment) -> int:
        s = self.settings
        extra = _clamp(segment.length / 180.0 * 3.0, 0.0, 3.0)
        return math.floor(self.rng.uniform(s.along_leaf_min, s.along_leaf_max + extra + 1))

    def scatter_along(self, segment: Segment) -> int:
        """Sprinkle leaves around a freshly committed segment. Returns how many were placed."""
        if len(self.leaves) >= self.profile.leaf_count:
            return 0
        rng = self.rng
        r = self.profile.along_leaf_radius
        count = self.leaf_count_for(segment)
        for _ in range(count):
            px, py = segment.point_at(rng.uniform(0.15, 0.85))
            self.try_place(px + rng.uniform(-r, r), py + rng.uniform(-r, r))
        return count

    def backfill(self) -> int:
        """Top the canopy up toward ``min_leaf_count``, at most ``backfill_per_frame`` per call."""
        need = min(self.profile.min_leaf_count - len(self.leaves), self.profile.backfill_per_frame)
        if need <= 0:
            return 0
        rng = self.rng
        m = self.settings.margin
        jx, jy = self.settings.backfill_jitter
        for _ in range(need):
            if self.leaves:
                base = rng.choice(self.leaves)
                self.try_place(
                    _clamp(base.x + rng.uniform(-jx, jx), m, self.width - m),
                    _clamp(base.y + rng.uniform(-jy, jy), m, self.height - m),
                )
            else:
                self.try_place(
                    rng.uniform(m, self.width - m),
                    rng.uniform(self.height * 0.2, self.height * 0.9),
                )
        return need

    # -------------------------
    # Physics
    # -------------------------

    def update(self, frame: int) -> int:
        """Step every falling leaf. Returns the number still falling.

        The ground is sampled once for all falling leaves after they move.
        """
        moving = [i for i, leaf in enumerate(self.leaves) if leaf.falling]
        if not moving:
            return 0
        for i in moving:
            self.leaves[i].step(frame)
        xs = np.fromiter((self.leaves[i].x for i in moving), dtype=np.float64, count=len(moving))
        ground_ys = self.ground.heights(xs).tolist()

        falling = 0
        for i, gy in zip(moving, ground_ys):
            leaf = self.leaves[i]
            if not leaf.settle(gy):
                falling += 1
            self._xy[i] = (leaf.x, leaf.y)
        return falling

    # -------------------------
    # Pointer interaction
    # -------------------------

    def leaves_near(self, x: float, y: float, radius: float) -> List[Leaf]:
        r_sq = radius * radius
        return [lf for lf in self.leaves if (lf.x - x) ** 2 + (lf.y - y) ** 2 <= r_sq]

    def ripple(self, x: float, y: float) -> int:
        detached = 0
        for leaf in self.leaves_near(x, y, self.settings.click_radius):
            if leaf.falling:
                continue
            if self.rng.random() < self.settings.ripple_probability:
                leaf.start_falling(self.rng)
                detached += 1
        return detached

    def detach_all(self) -> None:
        for leaf in self.leaves:
            leaf.start_falling(self.rng, force=True)

    def pointer_select(self, x: float, y: float) -> int:
        """Knock leaves loose at (x, y). Returns how many were detached by this press.

        Direct hits use three times each leaf's own radius; a miss ripples out
        to ``click_radius``. Every ``bulk_clear_clicks`` presses the whole
        canopy drops.
        """
        self.click_count += 1
        hit = 0
        for leaf in self.leaves:
            if leaf.falling:
                continue
            if (leaf.x - x) ** 2 + (leaf.y - y) ** 2 <= (leaf.radius * 3) ** 2:
                leaf.start_falling(self.rng)
                hit += 1
        detached = hit if hit else self.ripple(x, y)

        if self.click_count >= self.settings.bulk_clear_clicks:
            logger.info("Bulk leaf drop after %d presses (%d leaves)", self.click_count, len(self.leaves))
            self.detach_all()
            self.click_count = 0
            detached = len(self.leaves)
        return detached
