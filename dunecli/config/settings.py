"""Pydantic Settings for configuration management.

All settings are loaded from environment variables and/or a ``.env`` file
with type validation.

Features:
    - SecretStr for the Dune API key (auto-masking in logs)
    - API base URL and request timeout
    - Polling and pagination parameters
    - CSV output options
"""

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dunecli.core.exceptions import AuthError

DEFAULT_API_URL = "https://api.dune.com/api/v1"


class DuneSettings(BaseSettings):
    """Dune CLI 설정.

    환경 변수 또는 .env 파일에서 설정을 로드합니다. 환경 변수가 .env 값보다
    우선합니다. API 키는 SecretStr로 보호되어 로그에 노출되지 않습니다.

    Environment Variables:
        - DUNE_API_KEY: Dune API 키
        - DUNE_API_URL: API base URL (기본: https://api.dune.com/api/v1)
        - REQUEST_TIMEOUT: 요청 타임아웃 초 (기본: 30)
        - POLL_INTERVAL: execute-get-results 폴링 간격 초 (기본: 5)
        - PAGE_SIZE / PREVIEW_ROWS: 결과 조회 행 수 (기본: 1000 / 10)

    로깅 설정은 LoggingConfig (LOG_ prefix) 에서 따로 로드합니다.

    Example:
        >>> settings = get_settings()
        >>> settings.dune_api_url
        'https://api.dune.com/api/v1'
        >>> settings.dune_api_key
        SecretStr('**********')
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # 알 수 없는 환경 변수 무시
    )

    # ==========================================================================
    # API
    # ==========================================================================
    dune_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Dune API Key",
    )
    dune_api_url: str = Field(
        default=DEFAULT_API_URL,
        description="Dune API base URL",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="API 요청 타임아웃 (초)",
    )

    # ==========================================================================
    # Polling (execute-get-results)
    # ==========================================================================
    poll_interval: float = Field(
        default=5.0,
        ge=0,
        description="실행 상태 폴링 간격 (초)",
    )
    max_polls: int = Field(
        default=120,
        ge=1,
        description="최대 폴링 횟수",
    )

    # ==========================================================================
    # Results
    # ==========================================================================
    page_size: int = Field(
        default=1000,
        ge=1,
        description="전체 결과 조회 시 페이지당 행 수",
    )
    preview_rows: int = Field(
        default=10,
        ge=1,
        description="peak=false 일 때 반환할 행 수",
    )
    csv_delimiter: str = Field(
        default=",",
        min_length=1,
        max_length=1,
        description="CSV 구분자",
    )

    @field_validator("dune_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """URL 끝의 '/' 제거."""
        return v.rstrip("/")

    def has_api_key(self) -> bool:
        """API 키가 설정되어 있는지 확인."""
        return bool(self.dune_api_key.get_secret_value().strip())


@lru_cache
def get_settings() -> DuneSettings:
    """설정 싱글톤 인스턴스 반환.

    Returns:
        DuneSettings 인스턴스
    """
    return DuneSettings()


def clear_settings_cache() -> None:
    """설정 캐시 초기화 (테스트용)."""
    get_settings.cache_clear()


def resolve_api_key(explicit: str | None, settings: DuneSettings | None = None) -> str:
    """Resolve the Dune API key.

    Order: explicit flag, then ``DUNE_API_KEY`` from the environment, then
    the ``.env`` file. The first non-empty value wins. The env/.env order is
    enforced by pydantic-settings itself.

    Args:
        explicit: Value of ``--api-key`` (None or empty when not given)
        settings: Settings to fall back to (defaults to get_settings())

    Returns:
        The API key

    Raises:
        AuthError: No key found anywhere
    """
    if explicit and explicit.strip():
        return explicit.strip()

    settings = settings or get_settings()
    if settings.has_api_key():
        return settings.dune_api_key.get_secret_value().strip()

    msg = "DUNE_API_KEY must be set (use --api-key, the environment or a .env file)"
    raise AuthError(msg)
