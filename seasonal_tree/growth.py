"""
Progress-driven staged emission of tree segments.

Layers become eligible as progress grows, their segments are queued, and a
bounded number are drained (committed) each tick so a large progress jump
still reveals the tree gradually.
"""

from __future__ import annotations

import math
from collections import deque
from enum import Enum
from typing import Deque, List

from seasonal_tree.turtle import LayeredSegments, Segment


class GrowthState(Enum):
    IDLE = "idle"
    EMITTING = "emitting"
    COMPLETE = "complete"


class GrowthScheduler:
    def __init__(self, layered: LayeredSegments, grow_per_frame: int = 30):
        self.layered = layered
        self.grow_per_frame = grow_per_frame
        self.emitted_layer_count = 0
        self.pending: Deque[Segment] = deque()
        self.committed: List[Segment] = []

    @property
    def total_layers(self) -> int:
        return len(self.layered)

    @property
    def state(self) -> GrowthState:
        if self.emitted_layer_count == 0:
            return GrowthState.IDLE
        if self.emitted_layer_count >= self.total_layers and not self.pending:
            return GrowthState.COMPLETE
        return GrowthState.EMITTING

    @property
    def is_complete(self) -> bool:
        """All layers emitted and the queue drained (vacuously true with no layers)."""
        return self.emitted_layer_count >= self.total_layers and not self.pending

    def target_layers(self, progress: float) -> int:
        clamped = min(1.0, max(0.0, progress))
        return math.floor(clamped * self.total_layers)

    def sync(self, progress: float) -> int:
        """Queue every layer ``progress`` makes eligible. Returns the number of layers emitted."""
        target = self.target_layers(progress)
        emitted = 0
        while self.emitted_layer_count < min(target, self.total_layers):
            self.pending.extend(self.layered[self.emitted_layer_count])
            self.emitted_layer_count += 1
            emitted += 1
        return emitted

    def drain(self) -> List[Segment]:
        """Commit up to ``grow_per_frame`` queued segments in FIFO order."""
        drained: List[Segment] = []
        while self.pending and len(drained) < self.grow_per_frame:
            seg = self.pending.popleft()
            self.committed.append(seg)
            drained.append(seg)
        return drained
