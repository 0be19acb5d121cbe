#!/usr/bin/env python3
"""Build the team avatar sprite sheet (avatars.png + avatars.json) for the map."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from packages.avatar_core.remote.frc_api import ApiConfigError, RemoteAvatarFetcher, load_api_config
from packages.avatar_core.sheets.pipeline import build_avatar_sheet


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Download FRC team avatars and stitch them, with any avatars from the "
            "previous sheet in DATA_DIR, into one sprite sheet."
        )
    )
    parser.add_argument("data_dir", type=Path, help="Map data directory containing teams.json")
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=Path("."),
        help="Where avatars.png and avatars.json are written (default: current directory)",
    )
    parser.add_argument(
        "--key-file",
        type=Path,
        default=Path("FRC_API_KEY"),
        help="File holding the raw FRC API key (default: ./FRC_API_KEY)",
    )
    parser.add_argument(
        "--year-file",
        type=Path,
        default=Path("YEAR"),
        help="Optional file naming the season to fetch (default: ./YEAR, else current year)",
    )
    parser.add_argument("--json", action="store_true", help="Emit a machine-readable summary")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if not args.data_dir.is_dir():
        print(f"ERROR: data directory {args.data_dir} does not exist!")
        return 1

    try:
        config = load_api_config(args.key_file, year_path=args.year_file)
    except ApiConfigError as exc:
        print(f"ERROR: {exc}")
        return 1

    result = build_avatar_sheet(
        args.data_dir,
        out_dir=args.out_dir,
        fetcher=RemoteAvatarFetcher(config),
    )

    if args.json:
        print(json.dumps(result.as_dict(), indent=2))
    else:
        print(
            f"Stitched {result.downloaded} downloaded and {result.legacy} reused avatars "
            f"into a {result.sheet_size}x{result.sheet_size} sheet "
            f"({result.dropped} of {result.team_count} teams without an avatar)"
        )
        if result.written:
            print(f"Wrote {result.paths.sheet} and {result.paths.manifest}")
        else:
            print("WARN: no avatars resolved; nothing written")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
