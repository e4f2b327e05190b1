"""
Turtle interpretation of a bracketed L-system sentence into layered segments.

Coordinates are canvas pixels with y growing downward, so a heading of
``-pi / 2`` points up. The branch stack is an explicit list of snapshots;
no recursion is involved.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Tuple

from seasonal_tree.config import SeasonProfile
from seasonal_tree.grammar import FORWARD, POP, PUSH, TURN_LEFT, TURN_RIGHT


@dataclass(frozen=True)
class Segment:
    x1: float
    y1: float
    x2: float
    y2: float
    thickness: float
    length: float
    layer: int

    def point_at(self, t: float) -> Tuple[float, float]:
        return (self.x1 + (self.x2 - self.x1) * t, self.y1 + (self.y2 - self.y1) * t)


@dataclass
class LayeredSegments:
    """Segments bucketed by the bracket depth that produced them."""

    layers: List[List[Segment]] = field(default_factory=list)

    @classmethod
    def with_depth(cls, depth: int) -> "LayeredSegments":
        return cls([[] for _ in range(depth)])

    def __len__(self) -> int:
        return len(self.layers)

    def __iter__(self) -> Iterator[List[Segment]]:
        return iter(self.layers)

    def __getitem__(self, index: int) -> List[Segment]:
        return self.layers[index]

    @property
    def segment_count(self) -> int:
        return sum(len(layer) for layer in self.layers)

    def segments(self) -> Iterator[Segment]:
        for layer in self.layers:
            yield from layer

    def add(self, segment: Segment) -> None:
        self.layers[segment.layer].append(segment)

    @classmethod
    def merge(cls, parts: Iterable["LayeredSegments"]) -> "LayeredSegments":
        """Concatenate several roots layer by layer (layer 0 with layer 0, ...)."""
        merged = cls()
        for part in parts:
            while len(merged.layers) < len(part.layers):
                merged.layers.append([])
            for i, layer in enumerate(part.layers):
                merged.layers[i].extend(layer)
        return merged


@dataclass(frozen=True)
class TurtleState:
    x: float
    y: float
    heading: float
    thickness: float
    layer: int


def segment_length(profile: SeasonProfile, length_mul: float, iterations: int) -> float:
    return profile.lsystem.base_len * length_mul * profile.lsystem.len_factor ** iterations


def interpret(
    sentence: str,
    start: Tuple[float, float],
    profile: SeasonProfile,
    iterations: int,
    length_mul: float = 1.0,
    thickness_mul: float = 1.0,
    heading: float = -math.pi / 2,
    top_stop: float = 20.0,
) -> LayeredSegments:
    """Walk ``sentence`` and return its segments grouped into ``iterations`` layers.

    Unknown symbols are ignored. The first forward step whose end point would
    reach ``top_stop`` ends the whole walk, leaving a partial root.
    """
    lsys = profile.lsystem
    thick = profile.thickness
    depth = max(1, iterations)
    out = LayeredSegments.with_depth(depth)

    seg_len = segment_length(profile, length_mul, iterations)
    angle_step = math.radians(lsys.angle_deg)

    x, y = start
    thickness = thick.start * thickness_mul
    layer = 0
    stack: List[TurtleState] = []

    for ch in sentence:
        if ch == FORWARD:
            trunk = not stack
            step = seg_len * lsys.trunk_boost if trunk else seg_len
            width = thickness * lsys.trunk_thick_boost if trunk else thickness
            nx = x + math.cos(heading) * step
            ny = y + math.sin(heading) * step
            if ny <= top_stop:
                break
            out.add(Segment(x, y, nx, ny, max(thick.min, width), step, layer))
            thickness = max(thick.min, thickness * thick.decay)
            x, y = nx, ny
        elif ch == TURN_LEFT:
            heading += angle_step
        elif ch == TURN_RIGHT:
            heading -= angle_step
        elif ch == PUSH:
            stack.append(TurtleState(x, y, heading, thickness, layer))
            layer = min(layer + 1, depth - 1)
        elif ch == POP:
            if stack:
                state = stack.pop()
                x, y, heading, thickness, layer = (
                    state.x, state.y, state.heading, state.thickness, state.layer,
                )

    return out
