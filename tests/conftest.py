"""Shared fixtures for tests.

HTTP traffic is stubbed with ``httpx.MockTransport``; no test talks to the
real Dune API.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from dunecli.config.settings import clear_settings_cache
from dunecli.dune.client import AsyncDuneClient
from dunecli.logging.context import clear_context

# ---------------------------------------------------------------------------
# 디렉토리 경로 → pytest 마커 자동 매핑
# ---------------------------------------------------------------------------
_DIR_MARKER_MAP: dict[str, str] = {
    "/cli/": "integration",
    "/dune/": "data",
    "/core/": "unit",
    "/config/": "unit",
    "/logging/": "unit",
}

EXECUTION_ID = "01J5ZMD33P6J413G1KQM6QTE4S"
QUERY_ID = 3998990

Handler = Callable[[httpx.Request], httpx.Response]


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """디렉토리 경로 기반 자동 마커 부여."""
    for item in items:
        fspath = str(item.fspath)
        for dir_pattern, marker_name in _DIR_MARKER_MAP.items():
            if dir_pattern in fspath:
                item.add_marker(getattr(pytest.mark, marker_name))
                break


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    """실제 DUNE_API_KEY / .env 가 테스트에 새어 들어오지 않도록 격리."""
    monkeypatch.delenv("DUNE_API_KEY", raising=False)
    monkeypatch.delenv("DUNE_API_URL", raising=False)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    clear_context()
    yield
    clear_settings_cache()
    clear_context()


@pytest.fixture()
def make_client() -> Callable[[Handler], AsyncDuneClient]:
    """MockTransport 기반 AsyncDuneClient 팩토리."""

    def _factory(handler: Handler) -> AsyncDuneClient:
        return AsyncDuneClient("test-key", transport=httpx.MockTransport(handler))

    return _factory


@pytest.fixture()
def sample_rows() -> list[dict[str, Any]]:
    """25개의 LP 포지션 샘플 행."""
    return [
        {
            "address": f"0x{i:040x}",
            "balance": i * 1.5,
            "is_contract": i % 2 == 0,
            "label": None if i % 3 == 0 else f"lp-{i}",
        }
        for i in range(25)
    ]


@pytest.fixture()
def status_payload() -> Callable[..., dict[str, Any]]:
    """/execution/{id}/status 응답 팩토리."""

    def _factory(state: str = "QUERY_STATE_EXECUTING") -> dict[str, Any]:
        finished = state not in ("QUERY_STATE_PENDING", "QUERY_STATE_EXECUTING")
        payload: dict[str, Any] = {
            "execution_id": EXECUTION_ID,
            "query_id": QUERY_ID,
            "is_execution_finished": finished,
            "state": state,
            "submitted_at": "2024-08-23T12:46:55.606607Z",
            "execution_started_at": "2024-08-23T12:46:57.221499084Z",
        }
        if state == "QUERY_STATE_COMPLETED":
            payload["execution_ended_at"] = "2024-08-23T13:05:39.370482549Z"
            payload["result_metadata"] = {
                "column_names": ["address", "balance", "balance_usd"],
                "column_types": ["varbinary", "double", "double"],
                "row_count": 1068677,
                "result_set_bytes": 61983266,
                "total_row_count": 1068677,
                "total_result_set_bytes": 61983266,
                "datapoint_count": 3206031,
                "pending_time_millis": 1614,
                "execution_time_millis": 1122148,
            }
        return payload

    return _factory


@pytest.fixture()
def results_payload() -> Callable[..., dict[str, Any]]:
    """/execution/{id}/results 응답 팩토리."""

    def _factory(
        rows: list[dict[str, Any]] | None = None,
        *,
        state: str = "QUERY_STATE_COMPLETED",
        next_offset: int | None = None,
        total: int | None = None,
    ) -> dict[str, Any]:
        rows = rows or []
        completed = state in ("QUERY_STATE_COMPLETED", "QUERY_STATE_COMPLETED_PARTIAL")
        payload: dict[str, Any] = {
            "execution_id": EXECUTION_ID,
            "query_id": QUERY_ID,
            "state": state,
            "is_execution_finished": state not in ("QUERY_STATE_PENDING", "QUERY_STATE_EXECUTING"),
            "submitted_at": "2024-08-23T12:46:55.606607Z",
        }
        if completed:
            columns = list(rows[0].keys()) if rows else []
            payload["result"] = {
                "rows": rows,
                "metadata": {
                    "column_names": columns,
                    "column_types": ["varchar"] * len(columns),
                    "row_count": len(rows),
                    "total_row_count": total if total is not None else len(rows),
                    "datapoint_count": len(rows) * len(columns),
                },
            }
        if next_offset is not None:
            payload["next_offset"] = next_offset
            payload["next_uri"] = f"https://api.dune.com/api/v1/execution/{EXECUTION_ID}/results?offset={next_offset}"
        return payload

    return _factory


@pytest.fixture()
def paginated_handler(
    results_payload: Callable[..., dict[str, Any]],
) -> Callable[[list[dict[str, Any]]], tuple[Handler, list[httpx.Request]]]:
    """limit/offset 를 따르는 results 핸들러 팩토리 (요청 기록 포함)."""

    def _factory(rows: list[dict[str, Any]]) -> tuple[Handler, list[httpx.Request]]:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            limit = int(request.url.params["limit"])
            offset = int(request.url.params.get("offset", "0"))
            page = rows[offset : offset + limit]
            nxt = offset + limit if offset + limit < len(rows) else None
            return httpx.Response(
                200, json=results_payload(page, next_offset=nxt, total=len(rows))
            )

        return handler, seen

    return _factory
