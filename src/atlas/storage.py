#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Disk storage for dynamic atlases.

An atlas is stored as two files sharing a base name: a JSON layout
document and, when the atlas has a Pillow surface, a PNG payload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from atlas.atlas_codec import (
    deserialize_atlas,
    record_from_json,
    record_to_json,
    serialize_atlas,
)
from atlas.dynamic_atlas import DynamicAtlas
from atlas.surface import PillowSurface
from packers.packer_types import InvalidOptionsError, PackerErrorCode

logger = logging.getLogger(__name__)

TEXTURE_EXTENSION = ".png"
DATA_EXTENSION = ".json"


@dataclass
class StorageOptions:
    """Where atlases are stored when no explicit path is given.

    Attributes:
        default_path: Directory used for atlases saved without a path.
    """

    default_path: Union[str, Path] = field(
        default_factory=lambda: Path.cwd() / "DynamicAtlases"
    )

    def validate(self) -> None:
        if not str(self.default_path):
            raise InvalidOptionsError(
                PackerErrorCode.INVALID_OPTIONS,
                "Storage default path must not be empty",
            )


@dataclass(frozen=True)
class AtlasFileInfo:
    """Name and directory of a stored atlas.

    Attributes:
        name: Base file name, without extension.
        path: Directory holding the files.
    """

    name: str
    path: Path

    @classmethod
    def for_atlas(
        cls,
        name: str,
        path: Optional[Union[str, Path]] = None,
        options: Optional[StorageOptions] = None,
    ) -> "AtlasFileInfo":
        """Build file info, falling back to the configured default path."""
        if path is None or not str(path):
            options = options or StorageOptions()
            options.validate()
            path = options.default_path
        return cls(name=name, path=Path(path))

    @property
    def path_texture(self) -> Path:
        return self.path / f"{self.name}{TEXTURE_EXTENSION}"

    @property
    def path_data(self) -> Path:
        return self.path / f"{self.name}{DATA_EXTENSION}"


def save_atlas(
    atlas: DynamicAtlas,
    info: Optional[AtlasFileInfo] = None,
    options: Optional[StorageOptions] = None,
) -> AtlasFileInfo:
    """Write an atlas layout, and its pixels if it has a Pillow surface.

    Args:
        atlas: Atlas to save. Pending inserts are committed first.
        info: Target files; defaults to the atlas name in the default path.
        options: Storage options supplying the default path.

    Returns:
        The file info that was written.
    """
    if info is None:
        info = AtlasFileInfo.for_atlas(atlas.name, options=options)

    info.path.mkdir(parents=True, exist_ok=True)

    record = serialize_atlas(atlas)
    info.path_data.write_text(record_to_json(record), encoding="utf-8")

    if isinstance(atlas.surface, PillowSurface):
        info.path_texture.write_bytes(atlas.surface.to_png_bytes())

    logger.info(
        "Saved atlas '%s' (%d placements) to %s", atlas.name, len(atlas), info.path_data
    )
    return info


def load_atlas(info: AtlasFileInfo) -> Optional[DynamicAtlas]:
    """Read an atlas saved by `save_atlas`.

    The loaded atlas takes the name from `info`.

    Returns:
        The atlas, or None if no layout file exists.

    Raises:
        RecordFormatError: If the layout file is malformed.
        CorruptRecordError: If the layout geometry is inconsistent.
    """
    if not info.path_data.exists():
        logger.debug("No atlas layout at %s", info.path_data)
        return None

    record = record_from_json(info.path_data.read_text(encoding="utf-8"))
    record.name = info.name

    surface = None
    if info.path_texture.exists():
        surface = PillowSurface.from_png_bytes(info.path_texture.read_bytes())
    else:
        logger.warning(
            "Atlas layout %s has no texture payload at %s",
            info.path_data,
            info.path_texture,
        )

    return deserialize_atlas(record, surface=surface)


def delete_atlas(info: AtlasFileInfo) -> bool:
    """Delete a stored atlas.

    Returns:
        True if any file was removed, False if neither file existed.
    """
    removed = False
    for target in (info.path_texture, info.path_data):
        if target.exists():
            target.unlink()
            removed = True
    if removed:
        logger.info("Deleted atlas '%s' from %s", info.name, info.path)
    return removed


__all__ = [
    "AtlasFileInfo",
    "StorageOptions",
    "delete_atlas",
    "load_atlas",
    "save_atlas",
]
