import math
from unittest import TestCase

import numpy as np

from windmap.errors import EmptyFieldError
from windmap.field import ABSENT, Field, Hidden, Visible, field_to_json


def populated_field():
    # column 0: 10 cells from y=0, column 1: nothing, column 2: 5 cells from y=3 with a hole
    col0 = (0, [Visible(1.0, 0.0, 1.0)] * 10)
    col2 = (3, [Hidden(0.0, 1.0), None, Visible(0.0, 2.0, 2.0), Visible(0.0, 2.0, 2.0),
                Visible(0.0, 2.0, 2.0), Visible(0.0, 2.0, 2.0)])
    return Field(0, 0, 3, 12, [col0, None, col2])


class TestField(TestCase):

    def test_lookup(self):
        field = populated_field()
        self.assertEqual(field.at(0, 4), Visible(1.0, 0.0, 1.0))
        self.assertEqual(field.at(2, 3), Hidden(0.0, 1.0))
        self.assertIs(field.at(2, 4), ABSENT)
        self.assertIs(field.at(1, 0), ABSENT)
        self.assertIs(field.at(-1, 0), ABSENT)
        self.assertIs(field.at(3, 0), ABSENT)
        self.assertIs(field.at(0, 10), ABSENT)
        self.assertIs(field.at(2, 2), ABSENT)

    def test_absent_is_distinct_from_hidden(self):
        self.assertFalse(ABSENT)
        self.assertTrue(Hidden(0.0, 0.0))
        self.assertNotEqual(ABSENT, Hidden(0.0, 0.0))

    def test_populations(self):
        field = populated_field()
        self.assertEqual(field.populations(), [10, 0, 5])
        self.assertEqual(field.total, 15)

    def test_random_point_weighted_by_population(self):
        field = populated_field()
        rng = np.random.default_rng(7)
        counts = {0: 0, 1: 0, 2: 0}
        n = 30000
        for _ in range(n):
            x, y = field.random_point(rng)
            self.assertIsNot(field.at(x, y), ABSENT)
            counts[x] += 1
        self.assertEqual(counts[1], 0)
        self.assertAlmostEqual(counts[0] / counts[2], 2.0, delta=0.1)

    def test_random_point_covers_every_cell(self):
        field = populated_field()
        rng = np.random.default_rng(1)
        seen = {field.random_point(rng) for _ in range(2000)}
        self.assertEqual(len(seen), 15)

    def test_random_point_on_empty_field(self):
        field = Field(0, 0, 2, 2, [None, None])
        with self.assertRaises(EmptyFieldError):
            field.random_point()

    def test_to_dataset(self):
        ds = populated_field().to_dataset()
        self.assertEqual(ds["u"].shape, (12, 3))
        self.assertEqual(int(ds["defined"].sum()), 15)
        self.assertEqual(int(ds["visible"].sum()), 14)
        self.assertEqual(float(ds["v"].sel(x=2, y=3)), 1.0)
        self.assertTrue(math.isnan(float(ds["magnitude"].sel(x=2, y=3))))
        self.assertTrue(math.isnan(float(ds["u"].sel(x=1, y=0))))

    def test_field_to_json(self):
        doc = field_to_json(populated_field())
        self.assertEqual(doc["meta"]["nx"], 3)
        self.assertEqual(doc["meta"]["total"], 15)
        self.assertEqual(doc["u"][0][0], 1.0)
        self.assertIsNone(doc["u"][0][1])
        self.assertIsNone(doc["magnitude"][3][2])

    def test_column_count_must_match_width(self):
        with self.assertRaises(ValueError):
            Field(0, 0, 3, 3, [None])

    def test_fractional_coordinates_round_half_up(self):
        field = populated_field()
        self.assertEqual(field.at(0.0, 1.0), Visible(1.0, 0.0, 1.0))
        self.assertEqual(field.at(0.4, 1.0), Visible(1.0, 0.0, 1.0))
        self.assertEqual(field.at(1.6, 2.5), Hidden(0.0, 1.0))
        self.assertIs(field.at(0.5, 0.0), ABSENT)
        self.assertIs(field.at(-0.6, 0.0), ABSENT)
        self.assertEqual(field.at(-0.5, 9.4), Visible(1.0, 0.0, 1.0))
        self.assertIs(field.at(0.0, 9.5), ABSENT)
