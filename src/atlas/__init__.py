"""Dynamic texture atlas built on the MaxRects packer."""

from atlas.atlas_codec import (
    AtlasRecord,
    deserialize_atlas,
    record_from_json,
    record_to_json,
    serialize_atlas,
)
from atlas.atlas_options import AtlasOptions
from atlas.dynamic_atlas import DynamicAtlas, PlacementRecord
from atlas.storage import AtlasFileInfo, StorageOptions, delete_atlas, load_atlas, save_atlas
from atlas.surface import AtlasSurface, ImageSource, PillowSurface

__all__ = [
    "AtlasFileInfo",
    "AtlasOptions",
    "AtlasRecord",
    "AtlasSurface",
    "DynamicAtlas",
    "ImageSource",
    "PillowSurface",
    "PlacementRecord",
    "StorageOptions",
    "delete_atlas",
    "deserialize_atlas",
    "load_atlas",
    "record_from_json",
    "record_to_json",
    "save_atlas",
    "serialize_atlas",
]
