#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Tests for the dynamic atlas ledger and its surfaces.

Usage:
    python -m pytest tests/test_dynamic_atlas.py -v
"""

from __future__ import annotations

import sys
import unittest
from pathlib import Path
from typing import Any, List, Tuple

from PIL import Image

# Add src to path for imports
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from atlas.atlas_options import AtlasOptions
from atlas.dynamic_atlas import DynamicAtlas, PlacementRecord
from atlas.surface import AtlasSurface, ImageSource, PillowSurface
from packers.packer_types import (
    AtlasIndexError,
    InvalidFrameSizeError,
    InvalidOptionsError,
    MaxRectsHeuristic,
    PackerErrorCode,
    Rect,
    UnknownHeuristicError,
)

from rect_checks import overlapping_pairs, random_requests


class RecordingSurface(AtlasSurface):
    """Surface that records calls instead of copying pixels."""

    def __init__(self) -> None:
        self.copies: List[Tuple[Rect, Any]] = []
        self.apply_calls = 0

    def copy_pixels_into(self, rect: Rect, source: Any) -> None:
        self.copies.append((rect, source))

    def apply(self) -> None:
        self.apply_calls += 1


def _solid(name: str, color: Tuple[int, int, int, int], size: Tuple[int, int]) -> ImageSource:
    return ImageSource(name, Image.new("RGBA", size, color))


class TestAtlasConstruction(unittest.TestCase):
    """Tests for creating atlases."""

    def test_defaults(self):
        atlas = DynamicAtlas(64, 32, "ui")
        self.assertEqual(atlas.name, "ui")
        self.assertEqual(atlas.heuristic, MaxRectsHeuristic.BSSF)
        self.assertEqual(atlas.bin_rect, Rect(0, 0, 64, 32))
        self.assertEqual(len(atlas), 0)
        self.assertTrue(atlas.is_applied)
        self.assertEqual(atlas.occupancy(), 0.0)

    def test_square(self):
        atlas = DynamicAtlas.square(128, "icons", "baf")
        self.assertEqual((atlas.width, atlas.height), (128, 128))
        self.assertEqual(atlas.heuristic, MaxRectsHeuristic.BAF)

    def test_from_options(self):
        options = AtlasOptions(width=32, height=16, name="fx", heuristic="cp")
        atlas = DynamicAtlas.from_options(options)
        self.assertEqual(atlas.heuristic, MaxRectsHeuristic.CP)
        self.assertEqual((atlas.width, atlas.height), (32, 16))

    def test_invalid_options(self):
        with self.assertRaises(InvalidOptionsError) as ctx:
            DynamicAtlas(0, 64, "bad")
        self.assertEqual(ctx.exception.code, PackerErrorCode.INVALID_OPTIONS)
        with self.assertRaises(InvalidOptionsError):
            DynamicAtlas(64, 64, "")
        with self.assertRaises(UnknownHeuristicError):
            DynamicAtlas(64, 64, "bad", heuristic="random")


class TestAtlasLedger(unittest.TestCase):
    """Tests for insert and lookup."""

    def test_insert_then_lookup(self):
        atlas = DynamicAtlas(64, 64, "atlas")
        self.assertTrue(atlas.insert("A", 32, 32))
        self.assertTrue(atlas.insert("B", 32, 32))
        self.assertAlmostEqual(atlas.occupancy(), 0.5)
        self.assertFalse(atlas.insert("C", 40, 40))

        self.assertEqual(len(atlas), 2)
        self.assertEqual(atlas.count, 2)
        self.assertEqual(atlas.get_at(0).identifier, "A")
        self.assertEqual(atlas.get_at(1), PlacementRecord("B", Rect(32, 0, 32, 32)))
        self.assertEqual(atlas.get("A").rect, Rect(0, 0, 32, 32))
        self.assertIsNone(atlas.get("C"))

    def test_duplicate_identifier_returns_first(self):
        atlas = DynamicAtlas(64, 64, "atlas")
        atlas.insert("dup", 10, 10)
        atlas.insert("dup", 20, 20)
        self.assertEqual(atlas.get("dup").rect, atlas.get_at(0).rect)
        self.assertEqual(atlas.identifiers, ("dup", "dup"))

    def test_index_out_of_range_is_an_error(self):
        atlas = DynamicAtlas(16, 16, "atlas")
        atlas.insert("only", 4, 4)
        for index in (1, -1, 5):
            with self.assertRaises(AtlasIndexError) as ctx:
                atlas.get_at(index)
            self.assertIsInstance(ctx.exception, IndexError)
            self.assertEqual(ctx.exception.details["count"], 1)

    def test_placements_in_insertion_order(self):
        atlas = DynamicAtlas(128, 128, "atlas", MaxRectsHeuristic.BL)
        requests = random_requests(5, 40, 24)
        for identifier, width, height in requests:
            atlas.insert(identifier, width, height)

        placements = atlas.placements()
        self.assertEqual([p.identifier for p in placements], list(atlas.identifiers))
        self.assertEqual([p.rect for p in placements], list(atlas.used_rects))
        self.assertEqual(overlapping_pairs(atlas.used_rects), [])

        sizes = {identifier: (w, h) for identifier, w, h in requests}
        for placement in placements:
            self.assertEqual(
                (placement.rect.width, placement.rect.height),
                sizes[placement.identifier],
            )

    def test_same_requests_give_same_layout(self):
        requests = random_requests(9, 50, 30)
        first = DynamicAtlas(128, 128, "one", "blsf")
        second = DynamicAtlas(128, 128, "two", "blsf")
        for identifier, width, height in requests:
            self.assertEqual(
                first.insert(identifier, width, height),
                second.insert(identifier, width, height),
            )
        self.assertEqual(first.placements(), second.placements())


class TestCommitOnRead(unittest.TestCase):
    """Reads synchronize the surface before returning."""

    def setUp(self):
        self.surface = RecordingSurface()
        self.atlas = DynamicAtlas(64, 64, "atlas", surface=self.surface)

    def test_insert_marks_unapplied_and_copies(self):
        self.atlas.insert("a", 8, 8, source="handle-a")
        self.assertFalse(self.atlas.is_applied)
        self.assertEqual(self.surface.copies, [(Rect(0, 0, 8, 8), "handle-a")])
        self.assertEqual(self.surface.apply_calls, 0)

    def test_insert_without_source_skips_copy(self):
        self.atlas.insert("a", 8, 8)
        self.assertEqual(self.surface.copies, [])
        self.assertFalse(self.atlas.is_applied)

    def test_reads_commit_once_per_batch(self):
        for i in range(5):
            self.atlas.insert(f"s{i}", 8, 8, source=i)
        self.assertEqual(self.surface.apply_calls, 0)

        self.atlas.get_at(0)
        self.assertTrue(self.atlas.is_applied)
        self.assertEqual(self.surface.apply_calls, 1)

        self.atlas.get("s3")
        self.atlas.get("missing")
        self.atlas.placements()
        self.assertEqual(self.surface.apply_calls, 1)

        self.atlas.insert("late", 8, 8, source="late")
        self.assertIsNone(self.atlas.get("missing"))
        self.assertEqual(self.surface.apply_calls, 2)

    def test_failed_insert_keeps_applied_state(self):
        self.assertFalse(self.atlas.insert("huge", 65, 1, source="x"))
        self.assertTrue(self.atlas.is_applied)
        self.assertEqual(self.surface.copies, [])

    def test_commit_is_idempotent(self):
        self.atlas.insert("a", 8, 8, source="a")
        self.atlas.commit()
        self.atlas.commit()
        self.assertEqual(self.surface.apply_calls, 1)


class TestPillowSurface(unittest.TestCase):
    """Tests for the Pillow-backed surface."""

    def test_insert_image_pixels_visible_after_read(self):
        surface = PillowSurface(32, 32)
        atlas = DynamicAtlas(32, 32, "atlas", surface=surface)
        red = _solid("red", (255, 0, 0, 255), (8, 4))
        blue = _solid("blue", (0, 0, 255, 255), (16, 16))

        self.assertTrue(atlas.insert("red", red.width, red.height, red.image))
        self.assertTrue(atlas.insert("blue", blue.width, blue.height, blue.image))
        self.assertEqual(surface.pending_count, 2)
        self.assertEqual(surface.image.getpixel((0, 0)), (0, 0, 0, 0))

        blue_rect = atlas.get("blue").rect
        self.assertEqual(surface.pending_count, 0)
        cropped = surface.crop(blue_rect)
        self.assertEqual(cropped.size, (16, 16))
        self.assertEqual(cropped.getpixel((0, 0)), (0, 0, 255, 255))
        self.assertEqual(
            surface.crop(atlas.get("red").rect).getpixel((7, 3)), (255, 0, 0, 255)
        )

    def test_insert_image_uses_source_attributes(self):
        recording = RecordingSurface()
        atlas = DynamicAtlas(32, 32, "atlas", surface=recording)
        source = _solid("green", (0, 255, 0, 255), (5, 6))
        self.assertTrue(atlas.insert_image(source))
        self.assertEqual(atlas.get("green").rect, Rect(0, 0, 5, 6))
        self.assertIs(recording.copies[0][1], source)

    def test_size_mismatch_is_rejected(self):
        surface = PillowSurface(16, 16)
        with self.assertRaises(InvalidFrameSizeError):
            surface.copy_pixels_into(Rect(0, 0, 4, 4), Image.new("RGBA", (5, 4)))
        self.assertEqual(surface.pending_count, 0)

    def test_insert_image_with_pillow_surface(self):
        surface = PillowSurface(32, 32)
        atlas = DynamicAtlas(32, 32, "atlas", surface=surface)
        self.assertTrue(atlas.insert_image(_solid("green", (0, 255, 0, 255), (5, 6))))
        self.assertTrue(atlas.insert_image(_solid("red", (255, 0, 0, 255), (3, 3))))

        green = atlas.get("green").rect
        self.assertEqual(green, Rect(0, 0, 5, 6))
        self.assertEqual(surface.pending_count, 0)
        self.assertEqual(surface.crop(green).getpixel((4, 5)), (0, 255, 0, 255))
        self.assertEqual(
            surface.crop(atlas.get("red").rect).getpixel((0, 0)), (255, 0, 0, 255)
        )

    def test_mismatched_source_leaves_atlas_untouched(self):
        surface = PillowSurface(32, 32)
        atlas = DynamicAtlas(32, 32, "atlas", surface=surface)

        with self.assertRaises(InvalidFrameSizeError):
            atlas.insert("bad", 8, 8, Image.new("RGBA", (4, 4)))
        self.assertEqual(len(atlas), 0)
        self.assertEqual(atlas.used_rects, ())
        self.assertEqual(atlas.free_rects, (Rect(0, 0, 32, 32),))
        self.assertEqual(atlas.occupancy(), 0.0)
        self.assertTrue(atlas.is_applied)
        self.assertEqual(surface.pending_count, 0)
        self.assertIsNone(atlas.get("bad"))

        self.assertTrue(atlas.insert("good", 4, 4, Image.new("RGBA", (4, 4))))
        self.assertEqual(atlas.get_at(0), PlacementRecord("good", Rect(0, 0, 4, 4)))

    def test_png_round_trip(self):
        surface = PillowSurface(8, 8)
        surface.copy_pixels_into(Rect(2, 2, 2, 2), Image.new("RGBA", (2, 2), (9, 8, 7, 255)))
        surface.apply()
        restored = PillowSurface.from_png_bytes(surface.to_png_bytes())
        self.assertEqual(restored.size, (8, 8))
        self.assertEqual(restored.image.getpixel((3, 3)), (9, 8, 7, 255))
        self.assertEqual(restored.image.getpixel((0, 0)), (0, 0, 0, 0))


if __name__ == "__main__":
    unittest.main()
