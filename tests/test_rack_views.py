from __future__ import annotations

import unittest

from rack_fit import DEFAULT_STRUCTURE
from rack_views import VIEW_NAMES, render_rack_views_png

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _render(**overrides):
    kwargs = dict(
        cols=5,
        rows=5,
        tote_width_in=19.6,
        tote_height_in=15.2,
        structure=DEFAULT_STRUCTURE,
    )
    kwargs.update(overrides)
    return render_rack_views_png(**kwargs)


class TestRackViews(unittest.TestCase):
    def test_render_returns_png_bytes_for_every_view(self) -> None:
        views = _render()
        self.assertEqual(set(views), set(VIEW_NAMES))
        for png in views.values():
            self.assertTrue(png.startswith(PNG_SIGNATURE))
            self.assertGreater(len(png), 1000)

    def test_render_is_deterministic_for_same_inputs(self) -> None:
        self.assertEqual(_render(), _render())

    def test_render_changes_when_grid_changes(self) -> None:
        a = _render(cols=5)
        b = _render(cols=3)
        self.assertNotEqual(a["front"], b["front"])
        self.assertNotEqual(a["isometric"], b["isometric"])

    def test_zero_grid_renders_placeholder(self) -> None:
        views = _render(cols=0, rows=3)
        self.assertEqual(set(views), set(VIEW_NAMES))
        self.assertNotEqual(views["front"], _render()["front"])

    def test_only_requested_views_are_rendered(self) -> None:
        views = _render(view_names=(" Front ",))
        self.assertEqual(list(views), ["front"])
        self.assertEqual(_render(view_names=("side",)), {})

    def test_counts_must_be_ints(self) -> None:
        with self.assertRaises(TypeError):
            _render(cols=2.5)
        with self.assertRaises(TypeError):
            _render(rows=True)


if __name__ == "__main__":
    unittest.main()
