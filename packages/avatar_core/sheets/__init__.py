"""Sprite sheet layout, legacy reuse and persistence."""

from .compositor import AVATAR_BORDER, CELL_STRIDE, GridLayout, compose_sheet, grid_layout
from .legacy import LegacyImport, load_legacy_avatars
from .manifest import (
    SheetManifest,
    SheetManifestError,
    TeamListError,
    TeamRecord,
    load_manifest,
    load_team_numbers,
    manifest_json,
)
from .pipeline import SheetBuildResult, build_avatar_sheet
from .storage import MANIFEST_FILENAME, SHEET_FILENAME, SheetPaths, write_sheet_pair

__all__ = [
    "AVATAR_BORDER",
    "CELL_STRIDE",
    "GridLayout",
    "compose_sheet",
    "grid_layout",
    "LegacyImport",
    "load_legacy_avatars",
    "SheetManifest",
    "SheetManifestError",
    "TeamListError",
    "TeamRecord",
    "load_manifest",
    "load_team_numbers",
    "manifest_json",
    "SheetBuildResult",
    "build_avatar_sheet",
    "MANIFEST_FILENAME",
    "SHEET_FILENAME",
    "SheetPaths",
    "write_sheet_pair",
]
