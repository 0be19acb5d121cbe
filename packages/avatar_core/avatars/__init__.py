"""Avatar sources and decoding for sprite sheet builds."""

from .codec import AVATAR_SIZE, AvatarDecodeError, decode_avatar
from .sources import AvatarSource, EncodedAvatar, LegacySheetAvatar, SheetLocation

__all__ = [
    "AVATAR_SIZE",
    "AvatarDecodeError",
    "decode_avatar",
    "AvatarSource",
    "EncodedAvatar",
    "LegacySheetAvatar",
    "SheetLocation",
]
