"""Write the sheet image and manifest as a pair."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
import os

from PIL import Image

from .manifest import SheetManifest, manifest_json

SHEET_FILENAME = "avatars.png"
MANIFEST_FILENAME = "avatars.json"

logger = getLogger("avatar_core.sheets.storage")


@dataclass(frozen=True)
class SheetPaths:
    sheet: Path
    manifest: Path

    @classmethod
    def in_dir(cls, root: Path) -> "SheetPaths":
        return cls(sheet=root / SHEET_FILENAME, manifest=root / MANIFEST_FILENAME)


def write_sheet_pair(out_dir: Path, sheet: Image.Image, manifest: SheetManifest) -> SheetPaths:
    """Persist sheet and manifest together.

    Both are written to temp files first and only moved into place once both
    exist, so a failed save leaves the previous pair untouched. The moves run
    sheet first, then manifest; if the second move fails the new sheet sits
    next to the old manifest until the next run. Temp files are removed on
    any failure.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = SheetPaths.in_dir(out_dir)
    tmp_sheet = paths.sheet.with_suffix(paths.sheet.suffix + ".tmp")
    tmp_manifest = paths.manifest.with_suffix(paths.manifest.suffix + ".tmp")

    logger.info("[STORE] Saving %s and %s to %s", SHEET_FILENAME, MANIFEST_FILENAME, out_dir)
    try:
        sheet.save(tmp_sheet, format="PNG")
        tmp_manifest.write_text(manifest_json(manifest), encoding="utf-8")
        os.replace(tmp_sheet, paths.sheet)
        os.replace(tmp_manifest, paths.manifest)
    except BaseException:
        for tmp in (tmp_sheet, tmp_manifest):
            tmp.unlink(missing_ok=True)
        raise
    return paths
