import random

import pytest

from seasonal_tree.config import SceneSettings, get_profile
from seasonal_tree.errors import ConfigError
from seasonal_tree.grammar import forward_count
from seasonal_tree.growth import GrowthState
from seasonal_tree.progress import ProgressSignal
from seasonal_tree.scene import Scene, SceneController, randomize_roots


def make_scene(season: str, seed: int = 7, width: float = 1280.0, height: float = 800.0) -> Scene:
    return Scene(get_profile(season), width, height, rng=random.Random(seed))


class TestRoots:
    @pytest.mark.parametrize("seed", [0, 1, 7, 42, 1234])
    def test_winter_builds_five_shallow_roots(self, seed: int) -> None:
        scene = make_scene("winter", seed)
        assert len(scene.roots) == 5
        assert len(scene.root_segments) == 5
        for root, layered in zip(scene.roots, scene.root_segments):
            assert layered.segment_count > 0
            assert len(layered) <= 2
            assert 1 <= root.iterations <= 2

    def test_root_randomisation_ranges(self) -> None:
        profile = get_profile("summer")
        settings = SceneSettings()
        roots = randomize_roots(profile, settings, 1000.0, 700.0, random.Random(3))
        for root in roots:
            assert 0.85 <= root.length_mul <= 1.25
            assert 0.85 <= root.thickness_mul <= 1.3
            assert 2 <= root.iterations <= 4
            x, y = root.start
            assert settings.margin <= x <= 1000.0 - settings.margin
            assert 700.0 - settings.margin <= y <= 700.0 - 10

    def test_segments_bounded_by_sentence(self) -> None:
        scene = make_scene("spring", 11)
        for root, layered in zip(scene.roots, scene.root_segments):
            assert layered.segment_count <= forward_count(root.iterations)
            for seg in layered.segments():
                assert 0 <= seg.layer <= root.iterations - 1
                assert seg.y2 > scene.settings.top_stop_margin

    def test_layers_merge_across_roots(self) -> None:
        scene = make_scene("summer", 5)
        assert scene.growth.total_layers == max(len(r) for r in scene.root_segments)
        assert scene.layered.segment_count == sum(r.segment_count for r in scene.root_segments)

    def test_same_seed_same_scene(self) -> None:
        a = make_scene("autumn", 21)
        b = make_scene("autumn", 21)
        assert a.roots == b.roots
        assert a.layered.layers == b.layered.layers


class TestTick:
    def test_summer_grows_to_completion(self) -> None:
        scene = make_scene("summer", 2)
        progress = 0.0
        for _ in range(3000):
            scene.tick(progress)
            progress = min(1.0, progress + 0.04)
            if scene.growth.is_complete and progress >= 1.0:
                break
        growth = scene.growth
        assert growth.emitted_layer_count == growth.total_layers
        assert not growth.pending
        assert len(growth.committed) == scene.layered.segment_count
        assert scene.state is GrowthState.COMPLETE
        assert len(scene.leaves) > 0

    def test_backfill_reaches_minimum_after_growth(self) -> None:
        scene = make_scene("winter", 3)
        for _ in range(400):
            scene.tick(1.0)
        assert len(scene.leaves) >= scene.profile.min_leaf_count

    def test_oscillating_progress_never_unemits(self) -> None:
        scene = make_scene("spring", 9)
        rng = random.Random(1)
        last = 0
        for _ in range(200):
            scene.tick(rng.random())
            assert scene.growth.emitted_layer_count >= last
            last = scene.growth.emitted_layer_count

    def test_drain_is_bounded_per_tick(self) -> None:
        scene = make_scene("summer", 4)
        scene.tick(1.0)
        assert len(scene.growth.committed) <= scene.settings.grow_per_frame

    def test_hud_reports_progress(self) -> None:
        scene = make_scene("winter")
        scene.tick(0.5)
        lines = scene.hud_lines()
        assert lines[0] == "Winter"
        assert lines[-1] == "Progress: 50%"


class TestController:
    def test_tick_reads_signal(self) -> None:
        signal = ProgressSignal()
        ctl = SceneController(1000, 700, season="winter", signal=signal, rng=random.Random(1))
        signal.write(1.0)
        scene = ctl.tick()
        assert scene.growth.emitted_layer_count == scene.growth.total_layers

    def test_season_change_rebuilds_and_resets_progress(self) -> None:
        ctl = SceneController(1000, 700, season="summer", rng=random.Random(1))
        ctl.signal.write(0.8)
        ctl.tick()
        old = ctl.scene
        ctl.select_season("autumn")
        assert ctl.scene is not old
        assert ctl.season == "autumn"
        assert ctl.scene.profile is get_profile("autumn")
        assert ctl.signal.read() == 0.0
        assert ctl.scene.growth.emitted_layer_count == 0
        assert len(ctl.scene.leaves) == 0

    def test_unknown_season_keeps_current_scene(self) -> None:
        ctl = SceneController(1000, 700, rng=random.Random(1))
        old = ctl.scene
        with pytest.raises(ConfigError):
            ctl.select_season("monsoon")
        assert ctl.scene is old
        assert ctl.season == "summer"

    def test_failed_rebuild_keeps_season_and_scene_together(self, monkeypatch) -> None:
        ctl = SceneController(1000, 700, season="summer", rng=random.Random(1))
        old = ctl.scene

        def broken_scene(*args, **kwargs):
            raise RuntimeError("build failed")

        monkeypatch.setattr("seasonal_tree.scene.Scene", broken_scene)
        with pytest.raises(RuntimeError):
            ctl.select_season("winter")
        with pytest.raises(RuntimeError):
            ctl.resize(640, 480)
        assert ctl.scene is old
        assert ctl.season == "summer"
        assert ctl.scene.profile is ctl.profile
        assert (ctl.width, ctl.height) == (1000, 700)

    def test_resize_rebuilds_against_new_canvas(self) -> None:
        ctl = SceneController(1000, 700, season="winter", rng=random.Random(1))
        ctl.resize(640, 480)
        assert (ctl.scene.width, ctl.scene.height) == (640, 480)
        assert ctl.scene.ground.canvas_height == 480
        for root in ctl.scene.roots:
            assert root.start[0] <= 640 - ctl.settings.margin

    def test_pointer_select_reaches_leaves(self) -> None:
        ctl = SceneController(1000, 700, season="winter", rng=random.Random(1))
        ctl.signal.write(1.0)
        for _ in range(50):
            ctl.tick()
        leaf = ctl.scene.leaves.leaves[0]
        assert ctl.pointer_select(leaf.x, leaf.y) >= 1
        assert leaf.falling
