#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Tests for saving atlases to disk and loading them back.

These tests write only inside temporary directories.
"""

from __future__ import annotations

import json
import sys
import tempfile
import unittest
from pathlib import Path

from PIL import Image

# Add src to path for imports
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from atlas.dynamic_atlas import DynamicAtlas
from atlas.storage import (
    AtlasFileInfo,
    StorageOptions,
    delete_atlas,
    load_atlas,
    save_atlas,
)
from atlas.surface import PillowSurface
from packers.packer_types import CorruptRecordError, InvalidOptionsError, MaxRectsHeuristic


class TestAtlasFileInfo(unittest.TestCase):
    """Tests for file naming and default paths."""

    def test_paths(self):
        info = AtlasFileInfo(name="ui", path=Path("/data/atlases"))
        self.assertEqual(info.path_texture, Path("/data/atlases/ui.png"))
        self.assertEqual(info.path_data, Path("/data/atlases/ui.json"))

    def test_default_path_comes_from_options(self):
        options = StorageOptions(default_path="/srv/atlases")
        info = AtlasFileInfo.for_atlas("ui", options=options)
        self.assertEqual(info.path, Path("/srv/atlases"))
        explicit = AtlasFileInfo.for_atlas("ui", "/tmp/other", options)
        self.assertEqual(explicit.path, Path("/tmp/other"))

    def test_empty_default_path_rejected(self):
        with self.assertRaises(InvalidOptionsError):
            AtlasFileInfo.for_atlas("ui", options=StorageOptions(default_path=""))


class TestSaveLoad(unittest.TestCase):
    """Round trips through the filesystem."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_dir = Path(self._tmp.name)
        self.options = StorageOptions(default_path=self.tmp_dir / "atlases")

    def tearDown(self):
        self._tmp.cleanup()

    def _filled_atlas(self) -> DynamicAtlas:
        atlas = DynamicAtlas(64, 64, "sprites", MaxRectsHeuristic.BAF, PillowSurface(64, 64))
        colors = [(255, 0, 0, 255), (0, 255, 0, 255), (0, 0, 255, 255)]
        for i, color in enumerate(colors):
            image = Image.new("RGBA", (10 + i * 4, 12), color)
            self.assertTrue(atlas.insert(f"sprite_{i}", image.width, image.height, image))
        return atlas

    def test_save_writes_both_files(self):
        atlas = self._filled_atlas()
        info = save_atlas(atlas, options=self.options)

        self.assertEqual(info.path, self.tmp_dir / "atlases")
        self.assertTrue(info.path_data.exists())
        self.assertTrue(info.path_texture.exists())
        self.assertTrue(atlas.is_applied)

        data = json.loads(info.path_data.read_text(encoding="utf-8"))
        self.assertEqual(data["identifiers"], ["sprite_0", "sprite_1", "sprite_2"])
        self.assertEqual(data["heuristic"], "baf")

    def test_load_restores_layout_and_pixels(self):
        atlas = self._filled_atlas()
        info = save_atlas(atlas, options=self.options)

        loaded = load_atlas(info)
        self.assertIsNotNone(loaded)
        self.assertEqual(loaded.placements(), atlas.placements())
        self.assertEqual(loaded.free_rects, atlas.free_rects)
        self.assertTrue(loaded.is_applied)
        self.assertIsInstance(loaded.surface, PillowSurface)

        rect = loaded.get("sprite_2").rect
        self.assertEqual(loaded.surface.crop(rect).getpixel((0, 0)), (0, 0, 255, 255))

    def test_load_takes_name_from_file_info(self):
        atlas = self._filled_atlas()
        save_atlas(atlas, AtlasFileInfo("renamed", self.tmp_dir))
        loaded = load_atlas(AtlasFileInfo("renamed", self.tmp_dir))
        self.assertEqual(loaded.name, "renamed")

    def test_load_missing_returns_none(self):
        self.assertIsNone(load_atlas(AtlasFileInfo("nothing", self.tmp_dir)))

    def test_layout_without_surface(self):
        atlas = DynamicAtlas(32, 32, "plain")
        atlas.insert("a", 4, 4)
        info = save_atlas(atlas, AtlasFileInfo("plain", self.tmp_dir))
        self.assertFalse(info.path_texture.exists())

        with self.assertLogs("atlas.storage", level="WARNING"):
            loaded = load_atlas(info)
        self.assertIsNone(loaded.surface)
        self.assertEqual(loaded.get("a").rect, atlas.get("a").rect)

    def test_load_rejects_corrupt_layout(self):
        info = AtlasFileInfo("corrupt", self.tmp_dir)
        atlas = DynamicAtlas(16, 16, "corrupt")
        atlas.insert("a", 8, 8)
        save_atlas(atlas, info)

        data = json.loads(info.path_data.read_text(encoding="utf-8"))
        data["used_rects"].append({"x": 4, "y": 4, "width": 8, "height": 8})
        data["identifiers"].append("b")
        info.path_data.write_text(json.dumps(data), encoding="utf-8")

        with self.assertRaises(CorruptRecordError):
            load_atlas(info)

    def test_delete(self):
        info = save_atlas(self._filled_atlas(), options=self.options)
        self.assertTrue(delete_atlas(info))
        self.assertFalse(info.path_data.exists())
        self.assertFalse(info.path_texture.exists())
        self.assertFalse(delete_atlas(info))


if __name__ == "__main__":
    unittest.main()
