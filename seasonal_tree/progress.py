"""
Growth progress input and the gesture recogniser that drives it.

The recogniser is an external collaborator: any callable returning a
sequence of ``(label, probability)`` pairs. It runs on its own schedule and
only ever writes the shared ``ProgressSignal``; the simulation reads that
cell once at the top of each tick.
"""

from __future__ import annotations

import importlib
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from seasonal_tree.errors import ConfigError, GestureUnavailableError

logger = logging.getLogger(__name__)

POUR_TEA = "pour tea"
RISE_GLASS = "rise glass"
NOTHING = "nothing"

ACTION_THRESHOLD = 0.7
PROGRESS_STEP = 0.04

Prediction = Tuple[str, float]
Predictor = Callable[[], Sequence[Prediction]]

_ACTION_LABELS = {
    POUR_TEA: "Pouring tea",
    RISE_GLASS: "Raising glass",
    NOTHING: "No action",
}


def action_label(label: Optional[str]) -> str:
    if not label:
        return "Unrecognised"
    return _ACTION_LABELS.get(label.lower(), label)


class ProgressSignal:
    """Single-slot growth progress in [0, 1], last writer wins."""

    def __init__(self, value: float = 0.0):
        self._lock = threading.Lock()
        self._value = 0.0
        self.write(value)

    def read(self) -> float:
        with self._lock:
            return self._value

    def write(self, value: float) -> None:
        with self._lock:
            self._value = min(1.0, max(0.0, float(value)))

    def reset(self) -> None:
        self.write(0.0)


@dataclass
class KeyboardGesture:
    """Stand-in recogniser: pouring while the pour key is held."""

    held: bool = False

    def __call__(self) -> Sequence[Prediction]:
        if self.held:
            return [(POUR_TEA, 1.0), (NOTHING, 0.0)]
        return [(NOTHING, 1.0), (POUR_TEA, 0.0)]


class GestureProgressDriver:
    def __init__(self, signal: ProgressSignal, predictor: Optional[Predictor] = None):
        self.signal = signal
        self.predictor = predictor
        self.last_prediction: Prediction = ("", 0.0)
        if predictor is None:
            self.status = "Gesture recognition unavailable"
        else:
            self.status = "Waiting for gesture..."

    def step(self) -> None:
        """Run one prediction and fold it into the progress signal. Never raises."""
        if self.predictor is None:
            return
        try:
            predictions = list(self.predictor())
        except Exception as e:
            logger.warning("Gesture prediction failed: %s", e)
            self.status = "Prediction failed, retrying..."
            return
        if not predictions:
            self.status = "No prediction"
            return

        label, probability = max(predictions, key=lambda p: p[1])
        self.last_prediction = (label, probability)
        if label.lower() == POUR_TEA and probability >= ACTION_THRESHOLD:
            self.signal.write(self.signal.read() + PROGRESS_STEP)
        else:
            self.signal.reset()
        self.status = f"Action: {action_label(label)} ({probability * 100:.0f}%)"


def load_predictor(spec: str) -> Predictor:
    """Import ``"package.module:callable"``; a class is instantiated once."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"predictor must look like 'module:callable', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
        target = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise GestureUnavailableError(f"cannot load predictor {spec!r}: {e}") from e
    if isinstance(target, type):
        try:
            target = target()
        except Exception as e:
            raise GestureUnavailableError(f"predictor {spec!r} failed to initialise: {e}") from e
    if not callable(target):
        raise GestureUnavailableError(f"predictor {spec!r} is not callable")
    logger.info("Loaded gesture predictor %s", spec)
    return target
