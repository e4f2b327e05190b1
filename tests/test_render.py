import numpy as np
import pytest

pytest.importorskip("moderngl")

from seasonal_tree.config import get_profile  # noqa: E402
from seasonal_tree.ground import HeightField  # noqa: E402
from seasonal_tree.leaves import Leaf  # noqa: E402
from seasonal_tree.render import LEAF_ALPHA, ground_strip, pack_leaves, pack_segments  # noqa: E402
from seasonal_tree.turtle import Segment  # noqa: E402


class TestInstancePacking:
    def test_segments(self) -> None:
        segs = [Segment(1, 2, 3, 4, 5, 2.8, 0), Segment(6, 7, 8, 9, 1.5, 2.8, 1)]
        data = pack_segments(segs, (255, 0, 51))
        assert data.shape == (2, 9)
        assert data.dtype == np.float32
        np.testing.assert_allclose(data[0], [1, 2, 3, 4, 5, 1.0, 0.0, 0.2, 1.0], rtol=1e-6)
        assert data[1, 4] == pytest.approx(1.5)

    def test_leaves(self) -> None:
        leaf = Leaf(x=10, y=20, radius=5, color=(255.0, 127.5, 0.0), angle=0.5)
        data = pack_leaves([leaf])
        np.testing.assert_allclose(data[0], [10, 20, 5, 3, 0.5, 1.0, 0.5, 0.0, LEAF_ALPHA], rtol=1e-6)

    def test_many_leaves_keep_row_order(self) -> None:
        leaves = [
            Leaf(x=float(i), y=2.0 * i, radius=3.0 + i % 4, color=(0.0, 51.0, 255.0), angle=0.1 * i)
            for i in range(500)
        ]
        data = pack_leaves(leaves)
        assert data.shape == (500, 9)
        np.testing.assert_allclose(data[:, 0], np.arange(500))
        np.testing.assert_allclose(data[:, 3], data[:, 2] * 0.6, rtol=1e-6)
        np.testing.assert_allclose(data[123], [123, 246, 6, 3.6, 12.3, 0.0, 0.2, 1.0, LEAF_ALPHA], rtol=1e-5)

    def test_empty(self) -> None:
        assert pack_segments([], (0, 0, 0)).shape == (0, 9)
        assert pack_leaves([]).shape == (0, 9)


class TestGroundStrip:
    def test_strip_alternates_surface_and_bottom(self) -> None:
        field = HeightField(get_profile("winter").ground, 600.0)
        strip = ground_strip(field.polygon(100.0), 600.0)
        surface = field.silhouette(100.0)
        assert strip.shape == (len(surface) * 2, 2)
        for i, (x, y) in enumerate(surface):
            assert tuple(strip[2 * i]) == pytest.approx((x, y))
            assert tuple(strip[2 * i + 1]) == pytest.approx((x, 600.0))
