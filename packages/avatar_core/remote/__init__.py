"""Remote avatar sources."""

from .frc_api import (
    DEFAULT_FRC_API_BASE_URL,
    ApiConfigError,
    AvatarApiError,
    AvatarPage,
    AvatarRecord,
    FrcApiConfig,
    RemoteAvatarFetcher,
    fetch_avatar_page,
    load_api_config,
    parse_avatar_page,
)

__all__ = [
    "DEFAULT_FRC_API_BASE_URL",
    "ApiConfigError",
    "AvatarApiError",
    "AvatarPage",
    "AvatarRecord",
    "FrcApiConfig",
    "RemoteAvatarFetcher",
    "fetch_avatar_page",
    "load_api_config",
    "parse_avatar_page",
]
