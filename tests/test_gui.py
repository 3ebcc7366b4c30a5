"""
Tests for widgets, layout and the GUI loop (headless).
"""

import queue
import unittest
from unittest import mock

import numpy as np

from vviz.components import RangedVar
from vviz.entities import Axis3, NamedEntity3, colored_cube
from vviz.gui import GuiData, GuiLoop, HighGuiFrontend
from vviz.messages import (
    AddButton,
    AddRangedVar,
    AddWidget2,
    AddVar,
    AddWidget3,
    DeleteComponent,
    PlaceEntity3,
    UpdateRangedValue,
    UpdateScenePoseEntity3,
)
from vviz.pose import Isometry3, rot_x
from vviz.widgets import Widget2, Widget3, compute_grid_layout, layout_widgets, widget_at

WIDGET3_CONFIG = {'width': 160, 'height': 120}
CONFIG = {'widget3': WIDGET3_CONFIG}
WHITE = np.array([255, 255, 255], dtype=np.uint8)


def non_background_pixels(frame):
    return int(np.count_nonzero(np.any(frame != WHITE, axis=2)))


class TestGridLayout(unittest.TestCase):
    """Test cases for tiling widgets into the main panel."""

    def test_no_widgets(self):
        self.assertEqual(compute_grid_layout([], 800, 600), (0, 0.0, 0.0))
        self.assertEqual(layout_widgets([], 800, 600), [])

    def test_single_widget(self):
        num_cols, width, height = compute_grid_layout([4 / 3], 1000, 1000)
        self.assertEqual(num_cols, 1)
        self.assertAlmostEqual(width, 950.0)
        self.assertAlmostEqual(height, 712.5)

    def test_picks_widest_tiles(self):
        # Two square widgets in a wide area sit side by side
        num_cols, width, height = compute_grid_layout([1.0, 1.0], 2000, 1000)
        self.assertEqual(num_cols, 2)
        self.assertAlmostEqual(width, 950.0)
        self.assertAlmostEqual(height, 950.0)

        # ...and stacked in a tall one
        num_cols, _, _ = compute_grid_layout([1.0, 1.0], 1000, 2000)
        self.assertEqual(num_cols, 1)

    def test_uses_median_aspect_ratio(self):
        _, width, height = compute_grid_layout([1.0, 2.0, 100.0], 3000, 1000)
        self.assertAlmostEqual(width / height, 2.0)

    def test_even_count_median(self):
        _, width, height = compute_grid_layout([1.0, 2.0], 3000, 1000)
        self.assertAlmostEqual(width / height, 1.5)

    def test_rects_fit_and_do_not_overlap(self):
        rects = layout_widgets([4 / 3, 4 / 3, 1.0, 2.0, 0.5], 1280, 720)
        self.assertEqual(len(rects), 5)
        for rect in rects:
            self.assertGreaterEqual(rect.x, 0)
            self.assertGreaterEqual(rect.y, 0)
            self.assertLessEqual(rect.x + rect.width, 1280)
            self.assertLessEqual(rect.y + rect.height, 720)
        for i, a in enumerate(rects):
            for b in rects[i + 1:]:
                overlap_x = a.x < b.x + b.width and b.x < a.x + a.width
                overlap_y = a.y < b.y + b.height and b.y < a.y + a.height
                self.assertFalse(overlap_x and overlap_y)

    def test_hit_testing(self):
        rects = layout_widgets([1.0, 1.0], 2000, 1000)
        first, second = rects
        self.assertEqual(widget_at(rects, first.x + 1, first.y + 1), 0)
        self.assertEqual(widget_at(rects, second.x + second.width - 1, second.y + 1), 1)
        self.assertIsNone(widget_at(rects, 0, 0))


class TestWidget3(unittest.TestCase):
    """Software rendering of 3D widgets."""

    def setUp(self):
        self.widget = Widget3(WIDGET3_CONFIG)

    def place(self, label, entity, pose=None):
        self.widget.entities[label] = NamedEntity3(label, entity, pose or Isometry3.identity())

    def test_empty_scene_is_background(self):
        frame = self.widget.render()
        self.assertEqual(frame.shape, (120, 160, 3))
        self.assertEqual(frame.dtype, np.uint8)
        self.assertEqual(non_background_pixels(frame), 0)

    def test_cube_is_drawn(self):
        self.place("cube", colored_cube(0.5))
        frame = self.widget.render()
        self.assertGreater(non_background_pixels(frame), 100)
        # Centered on the optical axis
        self.assertTrue(np.any(frame[60, 80] != WHITE))

    def test_axis_is_drawn(self):
        self.place("axis", Axis3.from_scale(1.0).to_entity(), rot_x(0.7))
        self.assertGreater(non_background_pixels(self.widget.render()), 0)

    def test_entity_behind_camera_is_skipped(self):
        self.place("cube", colored_cube(0.5), Isometry3.from_translation(0.0, 1.5, 5.0))
        self.assertEqual(non_background_pixels(self.widget.render()), 0)

    def test_entity_beyond_far_plane_is_skipped(self):
        self.place("cube", colored_cube(0.5), Isometry3.from_translation(0.0, -15.0, -30.0))
        self.assertEqual(non_background_pixels(self.widget.render()), 0)

    def test_segment_crossing_near_plane_is_clipped(self):
        a, b = self.widget._clip_segment(np.array([0.0, 0.0, -1.0]), np.array([0.0, 0.0, 1.0]))
        self.assertAlmostEqual(a[2], self.widget.near)
        self.assertAlmostEqual(b[2], 1.0)
        self.assertIsNone(self.widget._clip_segment(np.array([0.0, 0.0, -1.0]), np.array([1.0, 0.0, -2.0])))

    def test_orbit_and_zoom(self):
        initial = self.widget.camera_pose_scene()
        self.widget.orbit(50, 0)
        self.assertNotEqual(self.widget.camera_pose_scene(), initial)

        self.widget.zoom_by(1)
        self.assertLess(self.widget.zoom, 1.0)
        for _ in range(200):
            self.widget.zoom_by(-1)
        self.assertLessEqual(self.widget.zoom, 20.0)

        self.widget.reset_view()
        self.assertEqual(self.widget.camera_pose_scene(), initial)

    def test_aspect_ratio(self):
        self.assertAlmostEqual(self.widget.aspect_ratio, 160 / 120)


class TestWidget2(unittest.TestCase):

    def test_grayscale_converted(self):
        widget = Widget2(np.zeros((10, 20), dtype=np.uint8))
        self.assertEqual(widget.render().shape, (10, 20, 3))
        self.assertAlmostEqual(widget.aspect_ratio, 2.0)

    def test_bgra_converted(self):
        widget = Widget2(np.zeros((10, 20, 4), dtype=np.uint8))
        self.assertEqual(widget.render().shape, (10, 20, 3))

    def test_invalid_images(self):
        with self.assertRaises(ValueError):
            Widget2(np.zeros((10, 20, 3), dtype=np.float32))
        with self.assertRaises(ValueError):
            Widget2(np.zeros((10, 20, 2), dtype=np.uint8))
        for shape in ((0, 20, 3), (10, 0), (0, 0)):
            with self.subTest(shape=shape):
                with self.assertRaises(ValueError):
                    Widget2(np.zeros(shape, dtype=np.uint8))

    def test_single_channel_converted(self):
        widget = Widget2(np.zeros((10, 20, 1), dtype=np.uint8))
        self.assertEqual(widget.render().shape, (10, 20, 3))

    def test_failed_set_image_keeps_previous(self):
        widget = Widget2(np.full((4, 4, 3), 9, dtype=np.uint8))
        with self.assertRaises(ValueError):
            widget.set_image(np.zeros((0, 4, 3), dtype=np.uint8))
        self.assertEqual(widget.render().shape, (4, 4, 3))


class TestGuiData(unittest.TestCase):

    def test_snapshot_recreates_state(self):
        data = GuiData(CONFIG)
        for message in (
            AddButton("go"),
            AddRangedVar("delta", 0.0, -1.0, 1.0),
            AddWidget2("img", np.full((4, 4, 3), 9, dtype=np.uint8)),
            AddWidget3("w3d"),
            PlaceEntity3("w3d", NamedEntity3("cube", colored_cube(0.5))),
            UpdateScenePoseEntity3("w3d", "cube", rot_x(0.7)),
        ):
            data.apply(message)
        UpdateRangedValue("delta", 0.25).update(data.components)

        restored = GuiData(CONFIG)
        for message in data.snapshot():
            restored.apply(message)

        self.assertEqual(restored.components, data.components)
        self.assertEqual(list(restored.widgets), ["img", "w3d"])
        np.testing.assert_array_equal(restored.widgets["img"].image, data.widgets["img"].image)
        self.assertEqual(restored.widgets["w3d"].entities, data.widgets["w3d"].entities)
        self.assertEqual(restored.components["delta"].value, 0.25)

    def test_widget3_uses_configuration(self):
        widget = GuiData(CONFIG).new_widget3()
        self.assertEqual((widget.width, widget.height), (160, 120))
        self.assertEqual(widget.far, 10.0)


class FakeFrontend:
    """Frontend recording frames instead of opening windows."""

    width = 320
    height = 240

    def __init__(self, frames=3):
        self.frames = frames
        self.shown = []
        self.opened = False
        self.closed = False

    def open(self, loop):
        self.opened = True

    def sync_controls(self, data):
        pass

    def show(self, canvas, data):
        self.shown.append(canvas)
        return len(self.shown) < self.frames

    def close(self):
        self.closed = True


class TestGuiLoop(unittest.TestCase):
    """Test cases for the GUI message pump and frame composition."""

    def setUp(self):
        self.to_gui_loop = queue.Queue()
        self.from_gui_loop = queue.Queue()
        self.frontend = FakeFrontend()
        self.gui_loop = GuiLoop(self.to_gui_loop, self.from_gui_loop, CONFIG, self.frontend)

    def test_bad_message_is_logged_and_skipped(self):
        self.to_gui_loop.put(PlaceEntity3("nowhere", NamedEntity3("cube", colored_cube(1.0))))
        self.to_gui_loop.put(AddWidget3("w3d"))
        with self.assertLogs("vviz.gui", level="WARNING"):
            self.assertEqual(self.gui_loop.process_messages(), 1)
        self.assertIn("w3d", self.gui_loop.data.widgets)

    def test_empty_image_is_dropped(self):
        self.to_gui_loop.put(AddWidget2("empty", np.zeros((0, 4, 3), dtype=np.uint8)))
        self.to_gui_loop.put(AddWidget2("flat", np.zeros((4, 0), dtype=np.uint8)))
        with self.assertLogs("vviz.gui", level="WARNING"):
            self.assertEqual(self.gui_loop.process_messages(), 0)
        self.assertEqual(self.gui_loop.data.widgets, {})
        self.assertEqual(self.gui_loop.compose(320, 240).shape, (240, 320, 3))

    def test_compose(self):
        self.to_gui_loop.put(AddWidget3("w3d"))
        self.to_gui_loop.put(PlaceEntity3("w3d", NamedEntity3("cube", colored_cube(0.5))))
        self.to_gui_loop.put(AddWidget2("img", np.zeros((120, 160, 3), dtype=np.uint8)))
        self.gui_loop.process_messages()

        canvas = self.gui_loop.compose(640, 360)
        self.assertEqual(canvas.shape, (360, 640, 3))
        self.assertEqual(len(self.gui_loop.rects), 2)

        rect = self.gui_loop.rects[0]
        widget = self.gui_loop.widget_at(rect.x + rect.width // 2, rect.y + rect.height // 2)
        self.assertIs(widget, self.gui_loop.data.widgets["w3d"])
        self.assertIsNone(self.gui_loop.widget_at(0, 0))

    def test_control_change_sends_update(self):
        self.to_gui_loop.put(AddRangedVar("counter", 5, -50, 50))
        self.gui_loop.process_messages()
        self.gui_loop.data.components["counter"].on_trackbar(60)
        self.gui_loop.on_control_changed("counter")
        self.gui_loop.on_control_changed("removed")
        self.assertEqual(self.from_gui_loop.get_nowait(), UpdateRangedValue("counter", 10))
        self.assertTrue(self.from_gui_loop.empty())

    def test_run_until_frontend_closes(self):
        self.to_gui_loop.put(AddWidget3("w3d"))
        self.gui_loop.run()
        self.assertTrue(self.frontend.opened)
        self.assertTrue(self.frontend.closed)
        self.assertEqual(len(self.frontend.shown), 3)
        self.assertEqual(self.frontend.shown[0].shape, (240, 320, 3))
        self.assertFalse(self.gui_loop.running)


class TestControlsPanel(unittest.TestCase):

    def test_panel_lists_controls(self):
        data = GuiData(CONFIG)
        data.components["counter"] = RangedVar(5, -50, 50)
        panel = HighGuiFrontend(CONFIG).render_controls_panel(data)
        self.assertEqual(panel.shape[1], 360)
        self.assertEqual(panel.shape[2], 3)


class TestTrackbarSync(unittest.TestCase):
    """Trackbar bookkeeping of the HighGUI frontend, with OpenCV windows mocked out."""

    def setUp(self):
        patcher = mock.patch("vviz.gui.cv2")
        self.cv2 = patcher.start()
        self.addCleanup(patcher.stop)

        self.frontend = HighGuiFrontend(CONFIG)
        self.gui_loop = GuiLoop(queue.Queue(), queue.Queue(), CONFIG, self.frontend)
        self.frontend.open(self.gui_loop)
        self.data = self.gui_loop.data

    def trackbar_counts(self):
        return [(c.args[0], c.args[3]) for c in self.cv2.createTrackbar.call_args_list]

    def test_new_controls_get_trackbars_once(self):
        self.data.apply(AddRangedVar("s", 5, 0, 10))
        self.data.apply(AddVar("scale", 0.5))
        self.frontend.sync_controls(self.data)
        self.frontend.sync_controls(self.data)

        self.assertEqual(self.trackbar_counts(), [("s", 10)])
        self.cv2.destroyWindow.assert_not_called()

    def test_replaced_control_rebuilds_window(self):
        self.data.apply(AddRangedVar("s", 5, 0, 10))
        self.frontend.sync_controls(self.data)

        # Removed and re-added under the same label between two frames
        self.data.apply(DeleteComponent("s"))
        self.data.apply(AddVar("s", True))
        self.frontend.sync_controls(self.data)

        self.cv2.destroyWindow.assert_called_once_with(self.frontend.controls_window_name)
        self.assertEqual(self.trackbar_counts(), [("s", 10), ("s", 1)])

    def test_removed_control_rebuilds_window(self):
        self.data.apply(AddRangedVar("s", 5, 0, 10))
        self.data.apply(AddButton("go"))
        self.frontend.sync_controls(self.data)

        self.data.apply(DeleteComponent("s"))
        self.frontend.sync_controls(self.data)

        self.cv2.destroyWindow.assert_called_once_with(self.frontend.controls_window_name)
        self.assertEqual(self.trackbar_counts(), [("s", 10), ("go", 1), ("go", 1)])


if __name__ == '__main__':
    unittest.main()
