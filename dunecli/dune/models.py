"""Dune Analytics API v1 request/response models.

Pydantic V2 models for the execute, status and results endpoints.
Request models are frozen; response models ignore unknown fields so that
new API fields do not break decoding.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from dunecli.core.exceptions import ValidationError

JsonRow = dict[str, Any]


class EngineSize(StrEnum):
    """Query engine tier (API field ``performance``)."""

    MEDIUM = "medium"
    LARGE = "large"

    @classmethod
    def parse(cls, value: str | None) -> EngineSize:
        """CLI 문자열 → EngineSize (대소문자 무시, None이면 medium).

        Raises:
            ValidationError: medium/large 이외의 값
        """
        if value is None:
            return cls.MEDIUM
        try:
            return cls(value.strip().lower())
        except ValueError:
            msg = "Invalid engine size. Use 'medium' or 'large'."
            raise ValidationError(msg, context={"engine_size": value}) from None


class ExecutionState(StrEnum):
    """Execution lifecycle states reported by the API."""

    PENDING = "QUERY_STATE_PENDING"
    EXECUTING = "QUERY_STATE_EXECUTING"
    COMPLETED = "QUERY_STATE_COMPLETED"
    COMPLETED_PARTIAL = "QUERY_STATE_COMPLETED_PARTIAL"
    FAILED = "QUERY_STATE_FAILED"
    CANCELLED = "QUERY_STATE_CANCELLED"
    EXPIRED = "QUERY_STATE_EXPIRED"

    @property
    def is_completed(self) -> bool:
        """Rows are available."""
        return self in (ExecutionState.COMPLETED, ExecutionState.COMPLETED_PARTIAL)

    @property
    def is_failed(self) -> bool:
        """Terminal state without rows."""
        return self in (ExecutionState.FAILED, ExecutionState.CANCELLED, ExecutionState.EXPIRED)

    @property
    def is_terminal(self) -> bool:
        return self.is_completed or self.is_failed


def parse_params(raw: str | None) -> dict[str, Any] | None:
    """``--params`` JSON 문자열 → dict.

    Args:
        raw: JSON object 문자열 (None/빈 문자열이면 None 반환)

    Returns:
        파라미터 dict 또는 None

    Raises:
        ValidationError: JSON 파싱 실패 또는 object가 아닌 경우
    """
    if raw is None or not raw.strip():
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        msg = f"Query parameters are not valid JSON: {e.msg}"
        raise ValidationError(msg, context={"params": raw}) from e
    if not isinstance(value, dict):
        msg = "Query parameters must be a JSON object"
        raise ValidationError(msg, context={"params": raw})
    return value


# =============================================================================
# POST /query/{query_id}/execute
# =============================================================================


class ExecutionRequest(BaseModel):
    """쿼리 실행 요청.

    Attributes:
        query_id: Dune 쿼리 ID (양의 정수)
        engine_size: 실행 엔진 크기
        parameters: 쿼리 파라미터 (name → JSON value)
    """

    model_config = ConfigDict(frozen=True)

    query_id: int = Field(..., gt=0)
    engine_size: EngineSize = EngineSize.MEDIUM
    parameters: dict[str, Any] | None = None

    @classmethod
    def build(
        cls,
        query_id: int,
        engine_size: str | EngineSize | None = None,
        parameters: str | dict[str, Any] | None = None,
    ) -> ExecutionRequest:
        """CLI 입력으로부터 요청 생성.

        Raises:
            ValidationError: query_id, engine_size, parameters 중 하나라도 잘못된 경우
        """
        size = engine_size if isinstance(engine_size, EngineSize) else EngineSize.parse(engine_size)
        params = parse_params(parameters) if isinstance(parameters, str) else parameters
        try:
            return cls(query_id=query_id, engine_size=size, parameters=params)
        except PydanticValidationError as e:
            msg = f"Invalid execution request: {e.errors()[0]['msg']}"
            raise ValidationError(msg, context={"query_id": query_id}) from e

    def to_payload(self) -> dict[str, Any]:
        """JSON request body."""
        payload: dict[str, Any] = {"performance": self.engine_size.value}
        if self.parameters is not None:
            payload["query_parameters"] = self.parameters
        return payload


class ExecutionHandle(BaseModel):
    """Execute 응답: 이후 status/results 조회에 쓰이는 opaque ID."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    execution_id: str
    state: ExecutionState = ExecutionState.PENDING


# =============================================================================
# GET /execution/{execution_id}/status
# =============================================================================


class ResultMetadata(BaseModel):
    """결과 메타데이터 (컬럼 이름/타입, 행 수)."""

    model_config = ConfigDict(extra="ignore")

    column_names: list[str] = Field(default_factory=list)
    column_types: list[str] = Field(default_factory=list)
    row_count: int = 0
    total_row_count: int = 0
    datapoint_count: int = 0


class ExecutionStatus(BaseModel):
    """Execution status response.

    Timestamps are kept as the raw ISO strings the API returns (nanosecond
    precision).
    """

    model_config = ConfigDict(extra="ignore")

    execution_id: str
    query_id: int
    is_execution_finished: bool
    state: ExecutionState
    submitted_at: str | None = None
    execution_started_at: str | None = None
    execution_ended_at: str | None = None
    result_metadata: ResultMetadata | None = None


# =============================================================================
# GET /execution/{execution_id}/results, GET /query/{query_id}/results
# =============================================================================


class ResultsFilter(BaseModel):
    """Server-side filtering for the results endpoints.

    Attributes:
        filters: SQL-like WHERE expression (e.g. ``"amount > 100"``)
        columns: Subset of columns to return
        sort_by: ORDER BY expression
    """

    model_config = ConfigDict(frozen=True)

    filters: str | None = None
    columns: list[str] | None = None
    sort_by: str | None = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.filters:
            params["filters"] = self.filters
        if self.columns:
            params["columns"] = ",".join(self.columns)
        if self.sort_by:
            params["sort_by"] = self.sort_by
        return params


class QueryResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    metadata: ResultMetadata = Field(default_factory=ResultMetadata)
    rows: list[JsonRow] = Field(default_factory=list)


class ResultPage(BaseModel):
    """Results 엔드포인트 응답 1 페이지.

    실행이 끝나지 않았으면 ``result``가 없습니다.
    """

    model_config = ConfigDict(extra="ignore")

    execution_id: str
    query_id: int | None = None
    state: ExecutionState
    is_execution_finished: bool = False
    next_offset: int | None = None
    result: QueryResult | None = None


class ResultSet(BaseModel):
    """Fetcher가 반환하는 최종 결과.

    Attributes:
        execution_id: 결과를 생성한 실행 ID
        state: 조회 시점의 실행 상태
        rows: 결과 행 (순서 유지)
        columns: 컬럼 이름 (순서 유지)
    """

    execution_id: str
    state: ExecutionState
    rows: list[JsonRow] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.state.is_completed

    @property
    def row_count(self) -> int:
        return len(self.rows)


# =============================================================================
# GET /materialized-views/{name}
# =============================================================================


class MaterializedView(BaseModel):
    """Materialized view metadata. Unknown fields are preserved."""

    model_config = ConfigDict(extra="allow")

    id: str
    query_id: int | None = None
    table_name: str | None = None
