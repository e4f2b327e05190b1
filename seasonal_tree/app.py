#!/usr/bin/env python3
"""
Seasonal Tree - windowed host.

Keys 1-4 pick the season, holding SPACE "pours tea" (grows the tree) when no
gesture model is configured, clicking knocks leaves loose, ESC quits.
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from typing import Dict, List, Optional

import pyglet

from seasonal_tree.config import SEASON_KEYS, SceneSettings, SeasonProfile, load_profiles
from seasonal_tree.errors import ConfigError, GestureUnavailableError
from seasonal_tree.progress import (
    GestureProgressDriver,
    KeyboardGesture,
    ProgressSignal,
    action_label,
    load_predictor,
)
from seasonal_tree.render import SceneRenderer
from seasonal_tree.scene import SceneController

logger = logging.getLogger(__name__)

SEASON_BY_KEY = {
    pyglet.window.key._1: SEASON_KEYS[0],
    pyglet.window.key._2: SEASON_KEYS[1],
    pyglet.window.key._3: SEASON_KEYS[2],
    pyglet.window.key._4: SEASON_KEYS[3],
}
POUR_KEY = pyglet.window.key.SPACE
PREDICT_INTERVAL = 1 / 30.0


class SeasonalTreeWindow(pyglet.window.Window):
    def __init__(
        self,
        width: int = 1280,
        height: int = 800,
        season: str = "summer",
        fullscreen: bool = False,
        settings: Optional[SceneSettings] = None,
        profiles: Optional[Dict[str, SeasonProfile]] = None,
        predictor_spec: Optional[str] = None,
        seed: Optional[int] = None,
    ):
        display = pyglet.display.get_display()
        screen = display.get_default_screen()
        width = min(width, screen.width - 100)
        height = min(height, screen.height - 100)

        self.controller: Optional[SceneController] = None

        # Try to create a window with multisampling, fallback to basic config if not supported
        try:
            config = pyglet.gl.Config(double_buffer=True, sample_buffers=1, samples=4)
            super().__init__(
                width=width,
                height=height,
                fullscreen=fullscreen,
                caption="Seasonal Tree",
                config=config,
                vsync=True,
                resizable=True,
            )
        except pyglet.window.NoSuchConfigException:
            logger.warning("Multisampling not supported, falling back to basic config")
            super().__init__(
                width=width,
                height=height,
                fullscreen=fullscreen,
                caption="Seasonal Tree",
                config=pyglet.gl.Config(double_buffer=True),
                vsync=True,
                resizable=True,
            )

        self.settings = settings or SceneSettings()
        self.signal = ProgressSignal()
        self.keyboard_gesture = KeyboardGesture()
        self.predictor_error: Optional[str] = None
        self.driver = GestureProgressDriver(self.signal, self._make_predictor(predictor_spec))
        self.renderer = SceneRenderer()
        self.controller = SceneController(
            self.width,
            self.height,
            season=season,
            settings=self.settings,
            profiles=profiles,
            signal=self.signal,
            rng=random.Random(seed),
        )

        self.info_batch = pyglet.graphics.Batch()
        self._init_labels()

        pyglet.clock.schedule_interval(self.update, 1 / self.settings.frame_rate)
        pyglet.clock.schedule_interval(self.predict, PREDICT_INTERVAL)

    def _make_predictor(self, spec: Optional[str]):
        if not spec:
            return self.keyboard_gesture
        try:
            return load_predictor(spec)
        except (ConfigError, GestureUnavailableError) as e:
            logger.warning("%s; falling back to keyboard gestures", e)
            self.predictor_error = "Gesture model failed to load, hold SPACE to grow"
            return self.keyboard_gesture

    def _init_labels(self):
        self.hud_labels: List[pyglet.text.Label] = [
            pyglet.text.Label(
                "",
                font_name="Arial",
                font_size=18 if i == 0 else 12,
                x=24,
                color=(20, 20, 20, 220),
                batch=self.info_batch,
            )
            for i in range(6)
        ]
        self._layout_labels()

    def _layout_labels(self):
        top_start_y = self.height - 30
        line_gap = 18
        for i, label in enumerate(self.hud_labels):
            label.y = top_start_y - line_gap * i - (6 if i else 0)

    def _update_labels(self):
        scene = self.controller.scene
        title, *hints, progress = scene.hud_lines()
        label, _ = self.driver.last_prediction
        status = self.predictor_error or self.driver.status
        lines = [title, *hints, f"Recognised: {action_label(label)}", progress, status]
        for text_label, text in zip(self.hud_labels, lines):
            text_label.text = text

    def on_key_press(self, symbol, modifiers):
        if symbol == pyglet.window.key.ESCAPE:
            self.close()
        elif symbol in SEASON_BY_KEY:
            self.controller.select_season(SEASON_BY_KEY[symbol])
        elif symbol == POUR_KEY:
            self.keyboard_gesture.held = True

    def on_key_release(self, symbol, modifiers):
        if symbol == POUR_KEY:
            self.keyboard_gesture.held = False

    def on_mouse_press(self, x, y, button, modifiers):
        # pyglet's origin is bottom-left, the scene's is top-left
        self.controller.pointer_select(x, self.height - y)

    def on_resize(self, width, height):
        super().on_resize(width, height)
        if self.controller is None:
            return
        self.renderer.ctx.viewport = (0, 0, *self.get_framebuffer_size())
        self._layout_labels()
        self.controller.resize(width, height)

    def predict(self, _dt):
        self.driver.step()

    def update(self, _dt):
        self.controller.tick()
        self._update_labels()

    def on_draw(self):
        self.clear()
        self.renderer.render(self.controller.scene)
        self.info_batch.draw()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="seasonal-tree",
        description="Grow a seasonal L-system forest and knock its leaves down.",
    )
    p.add_argument("--season", choices=SEASON_KEYS, default="summer")
    p.add_argument("--width", type=int, default=1280)
    p.add_argument("--height", type=int, default=800)
    p.add_argument("--seed", type=int, default=None, help="Seed for the scene's random stream")
    p.add_argument("--fps", type=float, default=60.0, help="Simulation ticks per second")
    p.add_argument("--profiles", default=None, help="JSON file overriding season profiles")
    p.add_argument(
        "--predictor",
        default=None,
        help="Gesture predictor as 'module:callable' returning (label, probability) pairs",
    )
    p.add_argument("--fullscreen", action="store_true")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    try:
        profiles = load_profiles(args.profiles) if args.profiles else None
        if args.fps <= 0:
            raise ConfigError("--fps must be positive")
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    SeasonalTreeWindow(
        width=args.width,
        height=args.height,
        season=args.season,
        fullscreen=args.fullscreen,
        settings=SceneSettings(frame_rate=args.fps),
        profiles=profiles,
        predictor_spec=args.predictor,
        seed=args.seed,
    )
    logger.info("Window created. Press ESC to exit.")
    pyglet.app.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
