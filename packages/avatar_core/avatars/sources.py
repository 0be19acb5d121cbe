"""Avatar sources that can draw themselves into a sprite sheet cell."""

from __future__ import annotations

import base64
import binascii
from abc import ABC, abstractmethod
from dataclasses import dataclass

from PIL import Image

from .codec import AVATAR_SIZE, AvatarDecodeError, decode_avatar


@dataclass(frozen=True)
class SheetLocation:
    """Top-left pixel offset of one avatar inside a sheet."""

    x: int
    y: int


class AvatarSource(ABC):
    """One team's 40x40 avatar, wherever its pixels come from."""

    @property
    @abstractmethod
    def team_number(self) -> int:
        ...

    @abstractmethod
    def render(self, canvas: Image.Image, x: int, y: int) -> None:
        """Draw the avatar onto ``canvas`` with its top-left corner at ``(x, y)``."""


class EncodedAvatar(AvatarSource):
    """Avatar downloaded from the API as encoded image bytes."""

    def __init__(self, team_number: int, data: bytes) -> None:
        self._team_number = int(team_number)
        self._data = bytes(data)

    @classmethod
    def from_base64(cls, team_number: int, text: str) -> "EncodedAvatar":
        try:
            # Line-wrapped payloads are valid; anything else non-alphabet is not.
            data = base64.b64decode("".join(text.split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise AvatarDecodeError(
                f"Avatar for team {team_number} is not valid base64",
                team_number=int(team_number),
                error_code="invalid_base64",
            ) from exc
        return cls(team_number, data)

    @property
    def team_number(self) -> int:
        return self._team_number

    @property
    def data(self) -> bytes:
        return self._data

    def render(self, canvas: Image.Image, x: int, y: int) -> None:
        img = decode_avatar(self._data, team_number=self._team_number)
        try:
            canvas.alpha_composite(img, dest=(x, y))
        finally:
            img.close()

    def __repr__(self) -> str:
        return f"EncodedAvatar(team_number={self._team_number}, bytes={len(self._data)})"


class LegacySheetAvatar(AvatarSource):
    """Avatar cut out of a sheet produced by an earlier run.

    Several instances share one sheet image; each render works on its own
    cropped copy so the shared sheet is never touched.
    """

    def __init__(self, team_number: int, sheet: Image.Image, location: SheetLocation) -> None:
        self._team_number = int(team_number)
        self._sheet = sheet
        self._location = location

    @property
    def team_number(self) -> int:
        return self._team_number

    @property
    def location(self) -> SheetLocation:
        return self._location

    def render(self, canvas: Image.Image, x: int, y: int) -> None:
        box = (
            self._location.x,
            self._location.y,
            self._location.x + AVATAR_SIZE,
            self._location.y + AVATAR_SIZE,
        )
        avatar = self._sheet.crop(box)
        try:
            canvas.alpha_composite(avatar, dest=(x, y))
        finally:
            avatar.close()

    def __repr__(self) -> str:
        return (
            f"LegacySheetAvatar(team_number={self._team_number}, "
            f"x={self._location.x}, y={self._location.y})"
        )
