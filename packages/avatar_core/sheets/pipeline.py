"""End-to-end avatar sheet build: teams -> downloads -> old sheet -> stitch -> save."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import Any, Protocol

from ..avatars.sources import AvatarSource, EncodedAvatar
from .compositor import CELL_STRIDE, compose_sheet
from .legacy import LegacyImport, load_legacy_avatars
from .manifest import load_team_numbers
from .storage import MANIFEST_FILENAME, SHEET_FILENAME, SheetPaths, write_sheet_pair

TEAMS_FILENAME = "teams.json"

logger = getLogger("avatar_core.sheets.pipeline")


class AvatarFetcher(Protocol):
    def fetch(self, pending: set[int]) -> list[EncodedAvatar]:
        ...


@dataclass(frozen=True)
class SheetBuildResult:
    team_count: int
    downloaded: int
    legacy: int
    dropped: int
    sheet_size: int
    paths: SheetPaths | None

    @property
    def written(self) -> bool:
        return self.paths is not None

    @property
    def sheet_pixels(self) -> int:
        return self.sheet_size * CELL_STRIDE

    def as_dict(self) -> dict[str, Any]:
        return {
            "team_count": self.team_count,
            "downloaded": self.downloaded,
            "legacy": self.legacy,
            "dropped": self.dropped,
            "sheet_size": self.sheet_size,
            "sheet_pixels": self.sheet_pixels,
            "written": self.written,
            "sheet_path": str(self.paths.sheet) if self.paths else None,
            "manifest_path": str(self.paths.manifest) if self.paths else None,
        }


def build_avatar_sheet(data_dir: Path, *, out_dir: Path, fetcher: AvatarFetcher) -> SheetBuildResult:
    """Rebuild the avatar sheet for every team listed in ``data_dir/teams.json``.

    The previous ``avatars.json``/``avatars.png`` in ``data_dir`` backfill teams
    the API has no avatar for. Any failure propagates and leaves the outputs in
    ``out_dir`` as they were.
    """
    team_numbers = load_team_numbers(data_dir / TEAMS_FILENAME)
    pending = set(team_numbers)
    logger.info("[PIPELINE] Building avatar sheet for %d teams", len(team_numbers))

    downloaded = fetcher.fetch(pending)

    legacy = LegacyImport()
    if pending:
        legacy = load_legacy_avatars(data_dir / MANIFEST_FILENAME, data_dir / SHEET_FILENAME, pending)

    with legacy:
        avatars: list[AvatarSource] = [*downloaded, *legacy.avatars]
        sheet, manifest = compose_sheet(avatars)

    try:
        paths: SheetPaths | None = None
        if avatars:
            paths = write_sheet_pair(out_dir, sheet, manifest)
            logger.info("[PIPELINE] Done! Wrote %d avatars to %s", len(avatars), paths.sheet)
        else:
            logger.warning("[PIPELINE] No avatars resolved for any team, leaving %s untouched", out_dir)
    finally:
        sheet.close()

    return SheetBuildResult(
        team_count=len(team_numbers),
        downloaded=len(downloaded),
        legacy=len(legacy.avatars),
        dropped=len(pending),
        sheet_size=manifest.sheet_size,
        paths=paths,
    )
