"""Paginated avatar downloads from the FRC Events API.

The API returns avatars as base64 PNG payloads, one page of teams at a time:
``GET /v2.0/{year}/avatars?page=N`` -> ``{"teams": [...], "pageTotal": M}``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from functools import partial
from logging import getLogger
from pathlib import Path
from typing import Callable, Optional
from urllib import error, request
import base64
import os

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..avatars.sources import EncodedAvatar

DEFAULT_FRC_API_BASE_URL = "https://frc-api.firstinspires.org/v2.0"

logger = getLogger("avatar_core.remote.frc_api")


def _first_non_empty(*values: str | None) -> str | None:
    for value in values:
        if value and value.strip():
            return value.strip()
    return None


class AvatarApiError(RuntimeError):
    def __init__(self, message: str, *, error_code: str, status: int | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.status = status


class ApiConfigError(AvatarApiError):
    pass


class AvatarRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team_number: int = Field(alias="teamNumber")
    encoded_avatar: Optional[str] = Field(default=None, alias="encodedAvatar")


class AvatarPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    teams: list[AvatarRecord]
    page_total: int = Field(alias="pageTotal", ge=0)


@dataclass(frozen=True)
class FrcApiConfig:
    year: str
    auth_token: str
    base_url: str = DEFAULT_FRC_API_BASE_URL
    timeout_s: float | None = None

    def avatars_url(self, page: int) -> str:
        return f"{self.base_url}/{self.year}/avatars?page={int(page)}"


def _read_year(year_path: Path | None, today: date | None) -> str:
    raw = _first_non_empty(os.environ.get("AVATARS_YEAR"))
    if raw is None and year_path is not None and year_path.exists():
        raw = _first_non_empty(year_path.read_text(encoding="utf-8"))
    if raw is None:
        year = (today or date.today()).year
        logger.info("[FETCH] YEAR file does not exist, using current year %d", year)
        return str(year)
    try:
        return str(int(raw))
    except ValueError as exc:
        raise ApiConfigError(f"Invalid year: {raw!r}", error_code="invalid_year") from exc


def load_api_config(
    key_path: Path,
    *,
    year_path: Path | None = None,
    today: date | None = None,
) -> FrcApiConfig:
    """Build API settings from the key/year files and ``AVATARS_*`` overrides."""
    env_key = _first_non_empty(os.environ.get("AVATARS_FRC_API_KEY"))
    if env_key is not None:
        key_bytes = env_key.encode("utf-8")
    elif key_path.exists():
        key_bytes = key_path.read_bytes()
    else:
        raise ApiConfigError(f"API key file not found: {key_path}", error_code="missing_api_key")
    if not key_bytes.strip():
        raise ApiConfigError(f"API key file is empty: {key_path}", error_code="missing_api_key")

    base_url = _first_non_empty(os.environ.get("AVATARS_API_BASE_URL")) or DEFAULT_FRC_API_BASE_URL

    timeout_s: float | None = None
    raw_timeout = _first_non_empty(os.environ.get("AVATARS_HTTP_TIMEOUT_S"))
    if raw_timeout is not None:
        try:
            timeout_s = float(raw_timeout)
        except ValueError as exc:
            raise ApiConfigError(
                f"Invalid AVATARS_HTTP_TIMEOUT_S: {raw_timeout!r}",
                error_code="invalid_timeout",
            ) from exc

    return FrcApiConfig(
        year=_read_year(year_path, today),
        auth_token=base64.b64encode(key_bytes).decode("ascii"),
        base_url=base_url.rstrip("/"),
        timeout_s=timeout_s,
    )


def parse_avatar_page(raw: str | bytes, *, page: int) -> AvatarPage:
    try:
        return AvatarPage.model_validate_json(raw)
    except ValidationError as exc:
        raise AvatarApiError(
            f"Avatar page {page} is not a valid API response: {exc.error_count()} error(s)",
            error_code="invalid_page",
        ) from exc


def fetch_avatar_page(config: FrcApiConfig, page: int) -> AvatarPage:
    req = request.Request(
        config.avatars_url(page),
        method="GET",
        headers={"Accept": "application/json"},
    )
    req.add_header("Authorization", f"Basic {config.auth_token}")

    kwargs = {} if config.timeout_s is None else {"timeout": config.timeout_s}
    try:
        with request.urlopen(req, **kwargs) as response:
            raw = response.read()
    except error.HTTPError as exc:
        if exc.code != 401:
            raise AvatarApiError(
                f"FRC API HTTP error {exc.code} on page {page}",
                error_code=f"http_{exc.code}",
                status=exc.code,
            ) from exc
        # A 401 still goes through parsing; an error body fails there.
        logger.error("[FETCH] Attempt to access FRC API resulted in a 401 Unauthorized!")
        raw = exc.read() or b""
    except (error.URLError, OSError) as exc:
        raise AvatarApiError(
            f"FRC API network error on page {page}: {exc}",
            error_code="network_error",
        ) from exc

    return parse_avatar_page(raw, page=page)


PageLoader = Callable[[int], AvatarPage]


class RemoteAvatarFetcher:
    """Walks every avatar page and claims avatars for pending teams."""

    def __init__(self, config: FrcApiConfig | None = None, *, page_loader: PageLoader | None = None) -> None:
        if page_loader is None:
            if config is None:
                raise ValueError("RemoteAvatarFetcher needs a config or a page_loader")
            page_loader = partial(fetch_avatar_page, config)
        self._config = config
        self._page_loader = page_loader

    def fetch(self, pending: set[int]) -> list[EncodedAvatar]:
        """Download avatars for teams in ``pending``.

        Every team that receives a non-empty avatar is removed from ``pending``.
        Pages are requested one after another; the first page tells us how many
        there are, and each later page may revise that total.
        """
        if self._config is not None:
            logger.info("[FETCH] Downloading %s avatars from %s", self._config.year, self._config.base_url)

        avatars: list[EncodedAvatar] = []
        page = 1
        payload = self._page_loader(page)
        while True:
            self._claim(payload, pending, avatars)
            logger.info("[FETCH] Downloaded page %d/%d", page, payload.page_total)
            if page >= payload.page_total:
                break
            page += 1
            payload = self._page_loader(page)

        logger.info("[FETCH] Downloaded %d avatars, %d teams still pending", len(avatars), len(pending))
        return avatars

    @staticmethod
    def _claim(payload: AvatarPage, pending: set[int], avatars: list[EncodedAvatar]) -> None:
        for record in payload.teams:
            if record.team_number not in pending:
                continue
            if not record.encoded_avatar:
                continue
            pending.discard(record.team_number)
            avatars.append(EncodedAvatar.from_base64(record.team_number, record.encoded_avatar))
