"""Grid layout and stitching of avatar sources into one sheet."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import Sequence
import math

from PIL import Image

from ..avatars.codec import AVATAR_SIZE
from ..avatars.sources import AvatarSource, SheetLocation
from .manifest import SheetManifest

# Gap between cells so resizing the whole sheet does not bleed neighbours together.
AVATAR_BORDER = 2
CELL_STRIDE = AVATAR_SIZE + AVATAR_BORDER

logger = getLogger("avatar_core.sheets.compositor")


@dataclass(frozen=True)
class GridLayout:
    count: int
    sheet_size: int
    cell_stride: int = CELL_STRIDE

    @property
    def pixel_size(self) -> int:
        return self.sheet_size * self.cell_stride

    def cell_origin(self, index: int) -> tuple[int, int]:
        if not 0 <= index < self.count:
            raise IndexError(f"cell {index} outside grid of {self.count}")
        return (index % self.sheet_size) * self.cell_stride, (index // self.sheet_size) * self.cell_stride


def grid_layout(count: int) -> GridLayout:
    """Smallest square grid that holds ``count`` avatars, row-major."""
    if count < 0:
        raise ValueError("count must be non-negative")
    root = math.isqrt(count)
    sheet_size = root if root * root == count else root + 1
    return GridLayout(count=count, sheet_size=sheet_size)


def compose_sheet(avatars: Sequence[AvatarSource]) -> tuple[Image.Image, SheetManifest]:
    """Render every avatar into a fresh sheet and record where it went.

    Placement follows input order. An empty input gives a 0x0 sheet with
    ``sheet_size == 0``.
    """
    layout = grid_layout(len(avatars))
    sheet = Image.new("RGBA", (layout.pixel_size, layout.pixel_size), (0, 0, 0, 0))
    manifest = SheetManifest(sheet_size=layout.sheet_size)

    logger.info("[STITCH] Stitching %d avatars into a %dx%d grid", layout.count, layout.sheet_size, layout.sheet_size)

    for i, avatar in enumerate(avatars):
        team_number = avatar.team_number
        if team_number in manifest.locations:
            raise ValueError(f"Team {team_number} has more than one avatar source")
        x, y = layout.cell_origin(i)
        avatar.render(sheet, x, y)
        manifest.locations[team_number] = SheetLocation(x=x, y=y)

    return sheet, manifest
