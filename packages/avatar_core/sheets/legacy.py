"""Reuse avatars from a previously built sheet for teams the API skipped."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path

from PIL import Image

from ..avatars.sources import LegacySheetAvatar
from .manifest import load_manifest

logger = getLogger("avatar_core.sheets.legacy")


@dataclass
class LegacyImport:
    """Avatars cut from an old sheet, plus the shared sheet they read from."""

    avatars: list[LegacySheetAvatar] = field(default_factory=list)
    sheet: Image.Image | None = None

    def close(self) -> None:
        if self.sheet is not None:
            self.sheet.close()
            self.sheet = None

    def __enter__(self) -> "LegacyImport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def load_legacy_avatars(manifest_path: Path, sheet_path: Path, pending: set[int]) -> LegacyImport:
    """Claim old-sheet avatars for every team still in ``pending``.

    Matched teams are removed from ``pending``. Missing legacy files are not an
    error: the import is simply empty.
    """
    if not manifest_path.exists() or not sheet_path.exists():
        logger.warning(
            "[LEGACY] Old %s or %s not found, skipping import of old avatars",
            manifest_path.name,
            sheet_path.name,
        )
        return LegacyImport()

    manifest = load_manifest(manifest_path)
    with Image.open(sheet_path) as raw:
        sheet = raw.convert("RGBA")

    result = LegacyImport(sheet=sheet)
    for team_number, location in manifest.locations.items():
        if team_number in pending:
            pending.discard(team_number)
            result.avatars.append(LegacySheetAvatar(team_number, sheet, location))
        if not pending:
            break

    logger.info(
        "[LEGACY] Reused %d avatars from %s, %d teams without any avatar",
        len(result.avatars),
        sheet_path,
        len(pending),
    )
    return result
