"""
Seasonal Tree - progressive L-system tree growth with falling leaves.

The simulation core (grammar, turtle, growth scheduler, leaf field, height
field) is pure Python + numpy. The pyglet/moderngl host lives in
``seasonal_tree.app`` and ``seasonal_tree.render`` and is only imported on
demand.
"""

from seasonal_tree.config import SEASON_KEYS, SceneSettings, SeasonProfile, get_profile
from seasonal_tree.scene import Scene, SceneController

__all__ = [
    "SEASON_KEYS",
    "SceneSettings",
    "SeasonProfile",
    "get_profile",
    "Scene",
    "SceneController",
]
