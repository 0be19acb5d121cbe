"""Avatar image decoding with a secondary OpenCV path for inputs Pillow rejects."""

from __future__ import annotations

from io import BytesIO
from logging import getLogger

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

AVATAR_SIZE = 40

logger = getLogger("avatar_core.avatars.codec")


class AvatarDecodeError(RuntimeError):
    def __init__(self, message: str, *, team_number: int, error_code: str = "undecodable_avatar") -> None:
        super().__init__(message)
        self.team_number = team_number
        self.error_code = error_code


def _decode_with_pillow(data: bytes) -> Image.Image:
    # No format hint: uploads are regularly JPEGs renamed to .png.
    with Image.open(BytesIO(data)) as img:
        img.load()
        return img.convert("RGBA")


def _decode_with_opencv(data: bytes) -> Image.Image:
    buffer = np.frombuffer(data, dtype=np.uint8)
    if buffer.size == 0:
        raise ValueError("empty image buffer")
    decoded = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if decoded is None:
        raise ValueError("OpenCV could not decode image bytes")
    if decoded.dtype != np.uint8:
        # BMP only holds 8-bit channels; float formats such as Radiance HDR span 0..1.
        if np.issubdtype(decoded.dtype, np.floating):
            scale = 255.0
        else:
            scale = 255.0 / np.iinfo(decoded.dtype).max
        decoded = cv2.convertScaleAbs(decoded, alpha=scale)
    ok, encoded = cv2.imencode(".bmp", decoded)
    if not ok:
        raise ValueError("OpenCV could not re-encode image as BMP")
    return _decode_with_pillow(encoded.tobytes())


def _fit(img: Image.Image, *, team_number: int) -> Image.Image:
    if img.size == (AVATAR_SIZE, AVATAR_SIZE):
        return img
    logger.debug("[CODEC] Resizing avatar for team %d from %dx%d", team_number, img.width, img.height)
    resized = img.resize((AVATAR_SIZE, AVATAR_SIZE), Image.Resampling.LANCZOS)
    img.close()
    return resized


def decode_avatar(data: bytes, *, team_number: int) -> Image.Image:
    """Decode raw avatar bytes into a 40x40 RGBA image.

    Pillow sniffs the format first. If it refuses the bytes, OpenCV decodes
    them and re-encodes to BMP, which Pillow then reads. Both failing is fatal.
    """
    try:
        img = _decode_with_pillow(data)
    except (UnidentifiedImageError, OSError, ValueError) as primary_exc:
        logger.warning(
            "[CODEC] Failed to load avatar for %d with Pillow (%s), decoding with OpenCV",
            team_number,
            primary_exc,
        )
        try:
            img = _decode_with_opencv(data)
        except (cv2.error, UnidentifiedImageError, OSError, ValueError) as exc:
            raise AvatarDecodeError(
                f"Avatar for team {team_number} could not be decoded: {exc}",
                team_number=team_number,
            ) from exc
    return _fit(img, team_number=team_number)
