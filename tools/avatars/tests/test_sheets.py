#!/usr/bin/env python3

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

from PIL import Image

from packages.avatar_core.avatars.sources import AvatarSource, SheetLocation
from packages.avatar_core.sheets import storage
from packages.avatar_core.sheets.compositor import CELL_STRIDE, compose_sheet, grid_layout
from packages.avatar_core.sheets.legacy import load_legacy_avatars
from packages.avatar_core.sheets.manifest import (
    SheetManifest,
    SheetManifestError,
    TeamListError,
    load_manifest,
    load_team_numbers,
    manifest_json,
)
from packages.avatar_core.sheets.storage import write_sheet_pair

CLEAR = (0, 0, 0, 0)


class SolidAvatar(AvatarSource):
    def __init__(self, team_number: int, color: tuple[int, int, int, int]) -> None:
        self._team_number = team_number
        self.color = color
        self.rendered_at: list[tuple[int, int]] = []

    @property
    def team_number(self) -> int:
        return self._team_number

    def render(self, canvas: Image.Image, x: int, y: int) -> None:
        self.rendered_at.append((x, y))
        canvas.alpha_composite(Image.new("RGBA", (40, 40), self.color), dest=(x, y))


def _color(i: int) -> tuple[int, int, int, int]:
    return (10 + i * 20, 200 - i * 15, 60 + i * 5, 255)


class GridLayoutTests(unittest.TestCase):
    def test_sheet_size_is_ceil_sqrt(self) -> None:
        expected = {0: 0, 1: 1, 2: 2, 3: 2, 4: 2, 5: 3, 9: 3, 10: 4, 3000: 55, 10**6: 1000, 10**6 + 1: 1001}
        for count, size in expected.items():
            self.assertEqual(grid_layout(count).sheet_size, size, msg=f"count={count}")

    def test_cells_are_row_major_with_border(self) -> None:
        layout = grid_layout(5)
        self.assertEqual(layout.cell_stride, 42)
        self.assertEqual(layout.pixel_size, 126)
        self.assertEqual(layout.cell_origin(0), (0, 0))
        self.assertEqual(layout.cell_origin(2), (84, 0))
        self.assertEqual(layout.cell_origin(3), (0, 42))
        self.assertEqual(layout.cell_origin(4), (42, 42))
        with self.assertRaises(IndexError):
            layout.cell_origin(5)

    def test_negative_count_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            grid_layout(-1)


class ComposeSheetTests(unittest.TestCase):
    def test_places_avatars_in_input_order(self) -> None:
        avatars = [SolidAvatar(num, _color(i)) for i, num in enumerate([900, 12, 4414, 7])]

        sheet, manifest = compose_sheet(avatars)

        self.assertEqual(sheet.size, (84, 84))
        self.assertEqual(manifest.sheet_size, 2)
        self.assertEqual(list(manifest.locations), [900, 12, 4414, 7])
        self.assertEqual(manifest.locations[900], SheetLocation(x=0, y=0))
        self.assertEqual(manifest.locations[12], SheetLocation(x=42, y=0))
        self.assertEqual(manifest.locations[4414], SheetLocation(x=0, y=42))
        self.assertEqual(manifest.locations[7], SheetLocation(x=42, y=42))

        for i, avatar in enumerate(avatars):
            loc = manifest.locations[avatar.team_number]
            self.assertEqual(avatar.rendered_at, [(loc.x, loc.y)])
            self.assertEqual(sheet.getpixel((loc.x, loc.y)), _color(i))
            self.assertEqual(sheet.getpixel((loc.x + 39, loc.y + 39)), _color(i))
            self.assertEqual(sheet.getpixel((loc.x + 40, loc.y + 40)), CLEAR)

    def test_unused_trailing_cells_stay_transparent(self) -> None:
        sheet, manifest = compose_sheet([SolidAvatar(n, _color(n)) for n in range(3)])
        self.assertEqual(sheet.size, (2 * CELL_STRIDE, 2 * CELL_STRIDE))
        self.assertEqual(len(manifest.locations), 3)
        self.assertEqual(sheet.getpixel((50, 50)), CLEAR)

    def test_empty_input_gives_empty_sheet(self) -> None:
        sheet, manifest = compose_sheet([])
        self.assertEqual(sheet.size, (0, 0))
        self.assertEqual(manifest.sheet_size, 0)
        self.assertEqual(manifest.locations, {})

    def test_duplicate_team_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            compose_sheet([SolidAvatar(1, _color(0)), SolidAvatar(1, _color(1))])


class ManifestTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_manifest_wire_shape(self) -> None:
        manifest = SheetManifest(sheet_size=2, locations={254: SheetLocation(x=0, y=0), 1: SheetLocation(x=42, y=0)})
        payload = json.loads(manifest_json(manifest))
        self.assertEqual(
            payload,
            {"sheet_size": 2, "locations": {"254": {"x": 0, "y": 0}, "1": {"x": 42, "y": 0}}},
        )

    def test_load_manifest_keeps_stored_order(self) -> None:
        path = self.root / "avatars.json"
        path.write_text(
            '{"sheet_size": 2, "locations": {"3": {"x": 84, "y": 0}, "1": {"x": 0, "y": 0}}}',
            encoding="utf-8",
        )
        manifest = load_manifest(path)
        self.assertEqual(manifest.sheet_size, 2)
        self.assertEqual(list(manifest.locations), [3, 1])
        self.assertEqual(manifest.locations[3], SheetLocation(x=84, y=0))

    def test_malformed_manifest_is_rejected(self) -> None:
        path = self.root / "avatars.json"
        path.write_text('{"locations": []}', encoding="utf-8")
        with self.assertRaises(SheetManifestError):
            load_manifest(path)

    def test_team_numbers_ignore_coordinates(self) -> None:
        path = self.root / "teams.json"
        path.write_text(
            json.dumps(
                [
                    {"team_number": 254, "lat": 37.3, "lng": -121.9},
                    {"team_number": 1114, "lat": 43.1, "lng": -79.2},
                    {"team_number": 254, "lat": 37.3, "lng": -121.9},
                ]
            ),
            encoding="utf-8",
        )
        self.assertEqual(load_team_numbers(path), {254, 1114})

    def test_team_without_number_is_rejected(self) -> None:
        path = self.root / "teams.json"
        path.write_text('[{"lat": 1.0, "lng": 2.0}]', encoding="utf-8")
        with self.assertRaises(TeamListError):
            load_team_numbers(path)


class LegacyAvatarTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.manifest_path = self.root / "avatars.json"
        self.sheet_path = self.root / "avatars.png"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write_legacy(self, locations: dict[int, tuple[int, int]]) -> None:
        sheet = Image.new("RGBA", (126, 126), CLEAR)
        for i, (x, y) in enumerate(locations.values()):
            sheet.paste(Image.new("RGBA", (40, 40), _color(i)), (x, y))
        sheet.save(self.sheet_path)
        payload = {
            "sheet_size": 3,
            "locations": {str(num): {"x": x, "y": y} for num, (x, y) in locations.items()},
        }
        self.manifest_path.write_text(json.dumps(payload), encoding="utf-8")

    def test_missing_files_leave_pending_untouched(self) -> None:
        pending = {1, 2}
        with self.assertLogs("avatar_core.sheets.legacy", level="WARNING"):
            legacy = load_legacy_avatars(self.manifest_path, self.sheet_path, pending)
        self.assertEqual(legacy.avatars, [])
        self.assertIsNone(legacy.sheet)
        self.assertEqual(pending, {1, 2})

    def test_missing_sheet_alone_skips_import(self) -> None:
        self.manifest_path.write_text('{"sheet_size": 1, "locations": {"1": {"x": 0, "y": 0}}}', encoding="utf-8")
        pending = {1}
        legacy = load_legacy_avatars(self.manifest_path, self.sheet_path, pending)
        self.assertEqual(legacy.avatars, [])
        self.assertEqual(pending, {1})

    def test_claims_pending_teams_in_manifest_order(self) -> None:
        self._write_legacy({30: (0, 0), 10: (42, 0), 20: (84, 0), 40: (0, 42)})
        pending = {10, 40, 77}

        with load_legacy_avatars(self.manifest_path, self.sheet_path, pending) as legacy:
            self.assertEqual([a.team_number for a in legacy.avatars], [10, 40])
            self.assertEqual(legacy.avatars[0].location, SheetLocation(x=42, y=0))
            self.assertIs(legacy.avatars[0]._sheet, legacy.avatars[1]._sheet)
            self.assertEqual(legacy.sheet.mode, "RGBA")

        self.assertEqual(pending, {77})
        self.assertIsNone(legacy.sheet)

    def test_stops_once_pending_is_empty(self) -> None:
        self._write_legacy({1: (0, 0), 2: (42, 0), 3: (84, 0)})
        visited: list[int] = []

        class RecordingLocations(dict):
            def items(self):
                for key, value in super().items():
                    visited.append(key)
                    yield key, value

        stored = load_manifest(self.manifest_path)
        recording = SimpleNamespace(locations=RecordingLocations(stored.locations))
        pending = {1}
        with mock.patch("packages.avatar_core.sheets.legacy.load_manifest", return_value=recording):
            with load_legacy_avatars(self.manifest_path, self.sheet_path, pending) as legacy:
                self.assertEqual([a.team_number for a in legacy.avatars], [1])

        self.assertEqual(visited, [1])
        self.assertEqual(pending, set())


class WriteSheetPairTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.out = Path(self._tmp.name) / "out"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_writes_png_and_manifest(self) -> None:
        sheet, manifest = compose_sheet([SolidAvatar(8, _color(1))])
        paths = write_sheet_pair(self.out, sheet, manifest)

        self.assertEqual(paths.sheet, self.out / "avatars.png")
        self.assertEqual(paths.manifest, self.out / "avatars.json")
        with Image.open(paths.sheet) as img:
            self.assertEqual(img.format, "PNG")
            self.assertEqual(img.size, (42, 42))
        self.assertEqual(load_manifest(paths.manifest), manifest)
        self.assertEqual(sorted(p.name for p in self.out.iterdir()), ["avatars.json", "avatars.png"])

    def test_failed_write_keeps_previous_pair(self) -> None:
        self.out.mkdir()
        (self.out / "avatars.png").write_bytes(b"old sheet")
        (self.out / "avatars.json").write_text("old manifest", encoding="utf-8")
        sheet, manifest = compose_sheet([SolidAvatar(8, _color(1))])

        with mock.patch.object(storage, "manifest_json", side_effect=RuntimeError("disk full")):
            with self.assertRaises(RuntimeError):
                write_sheet_pair(self.out, sheet, manifest)

        self.assertEqual((self.out / "avatars.png").read_bytes(), b"old sheet")
        self.assertEqual((self.out / "avatars.json").read_text(encoding="utf-8"), "old manifest")
        self.assertEqual(sorted(p.name for p in self.out.iterdir()), ["avatars.json", "avatars.png"])

    def test_failed_manifest_move_removes_temp_files(self) -> None:
        self.out.mkdir()
        (self.out / "avatars.json").write_text("old manifest", encoding="utf-8")
        sheet, manifest = compose_sheet([SolidAvatar(8, _color(1))])
        real_replace = storage.os.replace
        calls: list[str] = []

        def replace_sheet_only(src, dst):
            calls.append(Path(dst).name)
            if len(calls) == 2:
                raise OSError("device busy")
            real_replace(src, dst)

        with mock.patch.object(storage.os, "replace", side_effect=replace_sheet_only):
            with self.assertRaises(OSError):
                write_sheet_pair(self.out, sheet, manifest)

        self.assertEqual(calls, ["avatars.png", "avatars.json"])
        self.assertEqual((self.out / "avatars.json").read_text(encoding="utf-8"), "old manifest")
        self.assertEqual(sorted(p.name for p in self.out.iterdir()), ["avatars.json", "avatars.png"])


if __name__ == "__main__":
    unittest.main()
