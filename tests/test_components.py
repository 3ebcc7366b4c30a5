"""
Tests for control components and their trackbar mapping.
"""

import unittest

from vviz.components import Button, EnumStringRepr, RangedVar, Var


class TestRangedVar(unittest.TestCase):
    """Test cases for slider-backed ranged values."""

    def test_invalid_range(self):
        with self.assertRaises(ValueError):
            RangedVar(0, 5, 1)
        with self.assertRaises(ValueError):
            RangedVar(11, 0, 10)

    def test_integer_range_maps_one_to_one(self):
        var = RangedVar(5, -50, 50)
        self.assertTrue(var.is_integer)
        self.assertEqual(var.trackbar_count(), 100)
        self.assertEqual(var.trackbar_position(), 55)
        self.assertEqual(var.value_at(0), -50)
        self.assertTrue(var.on_trackbar(60))
        self.assertEqual(var.value, 10)
        self.assertIsInstance(var.value, int)

    def test_float_range_uses_steps(self):
        var = RangedVar(0.5, -1.0, 1.0, steps=100)
        self.assertFalse(var.is_integer)
        self.assertEqual(var.trackbar_count(), 100)
        self.assertEqual(var.trackbar_position(), 75)
        self.assertAlmostEqual(var.value_at(50), 0.0)
        self.assertAlmostEqual(var.value_at(100), 1.0)
        self.assertTrue(var.on_trackbar(0))
        self.assertAlmostEqual(var.value, -1.0)

    def test_unchanged_position_is_not_a_change(self):
        var = RangedVar(3, 0, 10)
        self.assertFalse(var.on_trackbar(3))

    def test_clamp(self):
        var = RangedVar(0.1, 0.0, 1.0)
        self.assertEqual(var.clamp(2.0), 1.0)
        self.assertEqual(var.clamp(-2.0), 0.0)
        int_var = RangedVar(1, 0, 10)
        self.assertEqual(int_var.clamp(42), 10)
        self.assertIsInstance(int_var.clamp(4.0), int)

    def test_describe(self):
        self.assertEqual(RangedVar(5, -50, 50).describe("counter"), "counter: 5  [-50, 50]")


class TestVar(unittest.TestCase):

    def test_bool_is_a_checkbox(self):
        var = Var(True)
        self.assertEqual(var.trackbar_count(), 1)
        self.assertEqual(var.trackbar_position(), 1)
        self.assertTrue(var.on_trackbar(0))
        self.assertIs(var.value, False)
        self.assertFalse(var.on_trackbar(0))
        self.assertEqual(var.describe("foo"), "foo: off")

    def test_number_is_read_only(self):
        var = Var(3.5)
        self.assertIsNone(var.trackbar_count())
        self.assertFalse(var.on_trackbar(1))
        self.assertEqual(var.value, 3.5)
        self.assertEqual(var.describe("scale"), "scale: 3.5")


class TestButton(unittest.TestCase):

    def test_click(self):
        button = Button()
        self.assertEqual(button.trackbar_count(), 1)
        self.assertTrue(button.on_trackbar(1))
        self.assertFalse(button.on_trackbar(0))
        self.assertFalse(button.pressed)


class TestEnumStringRepr(unittest.TestCase):

    def test_value_must_be_listed(self):
        with self.assertRaises(ValueError):
            EnumStringRepr("Qux", ["Foo", "Bar"])

    def test_trackbar_selects_by_index(self):
        options = EnumStringRepr("Daz", ["Foo", "Bar", "Daz"])
        self.assertEqual(options.trackbar_count(), 2)
        self.assertEqual(options.trackbar_position(), 2)
        self.assertTrue(options.on_trackbar(1))
        self.assertEqual(options.value, "Bar")
        self.assertFalse(options.on_trackbar(1))


if __name__ == '__main__':
    unittest.main()
