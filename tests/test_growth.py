from seasonal_tree.growth import GrowthScheduler, GrowthState
from seasonal_tree.turtle import LayeredSegments, Segment


def make_layers(*counts: int) -> LayeredSegments:
    layers = []
    for layer, count in enumerate(counts):
        layers.append([Segment(float(i), 0.0, float(i), 1.0, 1.0, 1.0, layer) for i in range(count)])
    return LayeredSegments(layers)


class TestEmission:
    def test_idle_at_zero_progress(self) -> None:
        sched = GrowthScheduler(make_layers(2, 3, 4))
        sched.sync(0.0)
        assert sched.state is GrowthState.IDLE
        assert sched.emitted_layer_count == 0
        assert not sched.pending

    def test_target_layer_is_floored(self) -> None:
        sched = GrowthScheduler(make_layers(2, 3, 4))
        assert sched.sync(0.5) == 1
        assert sched.emitted_layer_count == 1
        assert len(sched.pending) == 2
        assert sched.state is GrowthState.EMITTING

    def test_progress_is_clamped(self) -> None:
        sched = GrowthScheduler(make_layers(2, 3, 4))
        sched.sync(7.0)
        assert sched.emitted_layer_count == 3
        sched = GrowthScheduler(make_layers(2, 3, 4))
        sched.sync(-1.0)
        assert sched.emitted_layer_count == 0

    def test_emission_is_monotonic(self) -> None:
        sched = GrowthScheduler(make_layers(1, 1, 1, 1))
        seen = []
        for progress in (0.3, 0.9, 0.1, 0.0, 0.5, 0.6, 0.2, 1.0, 0.0):
            sched.sync(progress)
            seen.append(sched.emitted_layer_count)
        assert seen == sorted(seen)
        assert seen[-1] == 4

    def test_jump_queues_every_eligible_layer_in_order(self) -> None:
        sched = GrowthScheduler(make_layers(2, 3, 4))
        sched.sync(1.0)
        assert [seg.layer for seg in sched.pending] == [0, 0, 1, 1, 1, 2, 2, 2, 2]


class TestDrain:
    def test_drain_is_bounded_and_fifo(self) -> None:
        sched = GrowthScheduler(make_layers(2, 3, 4), grow_per_frame=4)
        sched.sync(1.0)
        queued = list(sched.pending)
        first = sched.drain()
        assert first == queued[:4]
        assert sched.committed == queued[:4]
        assert len(sched.pending) == 5

    def test_drains_to_complete(self) -> None:
        sched = GrowthScheduler(make_layers(2, 3, 4), grow_per_frame=4)
        sched.sync(1.0)
        ticks = 0
        while not sched.is_complete:
            sched.drain()
            ticks += 1
        assert ticks == 3
        assert sched.state is GrowthState.COMPLETE
        assert len(sched.committed) == 9

    def test_drain_with_empty_queue(self) -> None:
        sched = GrowthScheduler(make_layers(2))
        assert sched.drain() == []

    def test_committed_only_from_emitted_layers(self) -> None:
        sched = GrowthScheduler(make_layers(3, 3, 3), grow_per_frame=100)
        sched.sync(0.7)
        sched.drain()
        assert all(seg.layer < sched.emitted_layer_count for seg in sched.committed)
        assert len(sched.committed) == 6

    def test_no_layers_is_trivially_complete(self) -> None:
        sched = GrowthScheduler(LayeredSegments())
        sched.sync(1.0)
        assert sched.is_complete
        assert sched.total_layers == 0
