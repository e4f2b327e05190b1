"""Terraced ground height field shared by rendering and leaf collision."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from seasonal_tree.config import GroundParams
from seasonal_tree.noise import fbm_noise_1d


@dataclass(frozen=True)
class HeightField:
    """Ground surface y (canvas pixels, y down) as a function of x.

    The noise offset is floored to a multiple of ``params.step``, which gives
    the ground its stepped silhouette.
    """

    params: GroundParams
    canvas_height: float

    def heights(self, xs) -> np.ndarray:
        p = self.params
        xs = np.asarray(xs, dtype=np.float64)
        n = fbm_noise_1d((xs + p.seed) * p.noise_scale, seed=p.seed)
        offset = p.base_offset + n * p.noise_amp
        stepped = np.floor(offset / p.step) * p.step
        return self.canvas_height - stepped

    def height_at(self, x: float) -> float:
        return float(self.heights(np.array([x], dtype=np.float64))[0])

    def silhouette(self, width: float) -> List[Tuple[float, float]]:
        """Surface points from x=0 to x=width, sampled every ``params.step`` pixels."""
        xs = np.arange(0.0, width + 1e-9, self.params.step)
        if xs.size == 0 or xs[-1] < width:
            xs = np.append(xs, width)
        ys = self.heights(xs)
        return list(zip(xs.tolist(), ys.tolist()))

    def polygon(self, width: float) -> List[Tuple[float, float]]:
        """Closed fill region: bottom-left corner, the surface, bottom-right corner."""
        return [(0.0, self.canvas_height), *self.silhouette(width), (float(width), self.canvas_height)]
