from unittest import TestCase

import numpy as np

from windmap.masks import DisplayBounds, dilate, masker
from windmap.surface import ImageSurface, intensity_palette


class TestMasks(TestCase):

    def test_masker_reads_first_channel(self):
        image = np.zeros((3, 4, 4), dtype=np.uint8)
        image[1, 2] = (255, 255, 255, 255)
        image[0, 0] = (0, 255, 255, 255)
        mask = masker(image)
        self.assertTrue(mask(2, 1))
        self.assertFalse(mask(0, 0))
        self.assertFalse(mask(-1, 1))
        self.assertFalse(mask(4, 1))
        self.assertFalse(mask(2, 3))

    def test_masker_rejects_1d(self):
        with self.assertRaises(ValueError):
            masker(np.zeros(5))

    def test_dilate_disk(self):
        image = np.zeros((9, 9), dtype=bool)
        image[4, 4] = True
        grown = dilate(image, 2)
        self.assertEqual(int(grown.sum()), 13)
        self.assertTrue(grown[4, 2])
        self.assertTrue(grown[3, 3])
        self.assertFalse(grown[2, 2])
        self.assertTrue((dilate(image, 0) == image).all())

    def test_bounds_from_bbox(self):
        def project(lon, lat):
            return lon * 10, 100 - lat * 10

        b = DisplayBounds.from_bbox(1.05, 2.0, 5.0, 6.02, project)
        self.assertEqual(b, DisplayBounds(x=10, y=39, width=41, height=42))

    def test_clip(self):
        b = DisplayBounds(-5, 10, 50, 100).clip(40, 60)
        self.assertEqual(b, DisplayBounds(0, 10, 40, 50))


class TestImageSurface(TestCase):

    def test_palette(self):
        p = intensity_palette(186)
        self.assertEqual(p.shape, (186, 4))
        self.assertAlmostEqual(float(p[0, 0]), 70 / 255, places=6)
        self.assertAlmostEqual(float(p[-1, 0]), 1.0, places=6)

    def test_draw_and_fade(self):
        s = ImageSurface(10, 10, intensity_palette(3), fade_alpha=0.5)
        s.draw(2, [(1, 1, 4, 1), (8, 8, 12, 12)])
        self.assertEqual(float(s.rgba[1, 1, 3]), 1.0)
        self.assertEqual(float(s.rgba[1, 4, 3]), 1.0)
        self.assertEqual(float(s.rgba[9, 9, 3]), 1.0)
        self.assertEqual(float(s.rgba[5, 5, 3]), 0.0)
        s.fade()
        self.assertEqual(float(s.rgba[1, 2, 3]), 0.5)
        self.assertEqual(s.image().shape, (10, 10, 4))
