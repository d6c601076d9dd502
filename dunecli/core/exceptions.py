"""Custom exception hierarchy for the Dune CLI.

Every error raised by the client, the services or the CSV writer derives
from ``DuneCliError``. None of them is retried automatically: the CLI
prints the message and exits non-zero.

Exception Categories:
    - AuthError: Missing or rejected API key
    - ValidationError: Malformed CLI arguments or parameters
    - ApiError: Non-2xx responses and undecodable bodies
    - NetworkError: Connection or timeout failures
    - IoError: CSV write failures
    - ExecutionError: Query execution ended badly
"""


class DuneCliError(Exception):
    """모든 Dune CLI 예외의 기본 클래스.

    이 예외를 직접 발생시키지 말고, 하위 클래스를 사용하세요.

    Attributes:
        message: 에러 메시지
        context: 추가 컨텍스트 정보 (디버깅용)
    """

    def __init__(self, message: str, *, context: dict[str, object] | None = None) -> None:
        """DuneCliError 초기화.

        Args:
            message: 에러 메시지
            context: 추가 컨텍스트 정보 (선택)
        """
        super().__init__(message)
        self.message = message
        self.context: dict[str, object] = context or {}

    def __str__(self) -> str:
        """에러 메시지와 컨텍스트를 포함한 문자열 반환."""
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class AuthError(DuneCliError):
    """API 인증 오류 (API 키 누락, 잘못된 키 등).

    재시도로 해결되지 않습니다. DUNE_API_KEY 설정을 확인해야 합니다.
    """


class ValidationError(DuneCliError):
    """입력 검증 오류 (잘못된 CLI 인자, 파라미터 JSON, engine size).

    Example:
        >>> raise ValidationError(
        ...     "Invalid engine size",
        ...     context={"engine_size": "xl"}
        ... )
    """


class ApiError(DuneCliError):
    """Dune API가 2xx 이외의 응답을 반환했거나 응답 본문을 해석할 수 없음.

    Attributes:
        status_code: HTTP 상태 코드 (응답 파싱 실패 시 200일 수 있음)
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        context: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.status_code = status_code


class RateLimitError(ApiError):
    """API 레이트 리밋 초과 (HTTP 429).

    Attributes:
        retry_after: 서버가 제안한 대기 시간 (초)
    """

    def __init__(
        self,
        message: str,
        *,
        retry_after: float | None = None,
        context: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message, status_code=429, context=context)
        self.retry_after = retry_after


class NetworkError(DuneCliError):
    """네트워크 연결 오류 (타임아웃, 연결 실패 등).

    Example:
        >>> raise NetworkError(
        ...     "Connection timeout",
        ...     context={"url": "https://api.dune.com/api/v1", "timeout": 30}
        ... )
    """


class IoError(DuneCliError):
    """결과 파일 쓰기 실패 (CSV)."""


class ExecutionError(DuneCliError):
    """쿼리 실행이 실패/취소/만료 상태로 끝났거나 폴링 시간이 초과됨.

    Attributes:
        state: 마지막으로 관측된 실행 상태 (문자열)
    """

    def __init__(
        self,
        message: str,
        *,
        state: str | None = None,
        context: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.state = state


def add_context_note(exc: Exception, note: str) -> None:
    """예외에 컨텍스트 노트 추가 (Python 3.11+ add_note).

    원본 Traceback을 보존하면서 디버깅 정보를 추가합니다.

    Args:
        exc: 예외 객체
        note: 추가할 노트 문자열
    """
    exc.add_note(note)
