"""Sheet manifest and team list models.

The manifest is what the map client reads next to ``avatars.png``::

    {"sheet_size": 2, "locations": {"254": {"x": 0, "y": 0}, ...}}
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..avatars.sources import SheetLocation


class SheetManifestError(ValueError):
    def __init__(self, message: str, *, error_code: str = "invalid_manifest") -> None:
        super().__init__(message)
        self.error_code = error_code


class TeamListError(ValueError):
    def __init__(self, message: str, *, error_code: str = "invalid_team_list") -> None:
        super().__init__(message)
        self.error_code = error_code


class SheetManifest(BaseModel):
    sheet_size: int = Field(ge=0)
    locations: dict[int, SheetLocation] = Field(default_factory=dict)


class TeamRecord(BaseModel):
    """A team from ``teams.json``; map coordinates are ignored here."""

    team_number: int


_TEAM_LIST = TypeAdapter(list[TeamRecord])


def load_manifest(path: Path) -> SheetManifest:
    try:
        return SheetManifest.model_validate_json(path.read_bytes())
    except ValidationError as exc:
        raise SheetManifestError(f"Invalid sheet manifest {path}: {exc.error_count()} error(s)") from exc


def manifest_json(manifest: SheetManifest) -> str:
    return manifest.model_dump_json()


def load_team_numbers(path: Path) -> set[int]:
    try:
        teams = _TEAM_LIST.validate_json(path.read_bytes())
    except ValidationError as exc:
        raise TeamListError(f"Invalid team list {path}: {exc.error_count()} error(s)") from exc
    return {team.team_number for team in teams}
