"""Tests for dunecli/dune/executor.py — submit and execute-and-wait polling."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from dunecli.core.exceptions import ApiError, ExecutionError, ValidationError
from dunecli.dune.executor import DEFAULT_MAX_POLLS, DEFAULT_POLL_INTERVAL, QueryExecutor
from dunecli.dune.fetcher import ResultFetcher
from dunecli.dune.models import ExecutionRequest, ExecutionState


def _routing_handler(states: list[str], status_payload, results_payload, rows):
    """execute → status(states 순서대로) → results 라우팅 핸들러."""
    remaining = list(states)
    calls: dict[str, int] = {"execute": 0, "status": 0, "results": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/execute"):
            calls["execute"] += 1
            return httpx.Response(
                200,
                json={"execution_id": "01J5ZMD33P6J413G1KQM6QTE4S", "state": "QUERY_STATE_PENDING"},
            )
        if path.endswith("/status"):
            calls["status"] += 1
            state = remaining.pop(0) if len(remaining) > 1 else remaining[0]
            return httpx.Response(200, json=status_payload(state))
        calls["results"] += 1
        return httpx.Response(200, json=results_payload(rows))

    return handler, calls


class TestDefaults:
    def test_defaults(self) -> None:
        assert DEFAULT_POLL_INTERVAL == 5.0
        assert DEFAULT_MAX_POLLS == 120

    @pytest.mark.parametrize("max_polls", [0, -1])
    def test_rejects_non_positive_max_polls(self, make_client, max_polls: int) -> None:
        client = make_client(lambda request: httpx.Response(500))
        with pytest.raises(ValidationError, match="max_polls"):
            QueryExecutor(client, max_polls=max_polls)

    def test_rejects_negative_poll_interval(self, make_client) -> None:
        client = make_client(lambda request: httpx.Response(500))
        with pytest.raises(ValidationError, match="poll_interval"):
            QueryExecutor(client, poll_interval=-1.0)


class TestSubmit:
    @pytest.mark.asyncio()
    async def test_submit_returns_handle(self, make_client, status_payload, results_payload) -> None:
        handler, calls = _routing_handler(["QUERY_STATE_PENDING"], status_payload, results_payload, [])

        async with make_client(handler) as client:
            handle = await QueryExecutor(client).submit(ExecutionRequest.build(3998990))

        assert handle.execution_id == "01J5ZMD33P6J413G1KQM6QTE4S"
        assert calls == {"execute": 1, "status": 0, "results": 0}


class TestWaitForCompletion:
    @pytest.mark.asyncio()
    async def test_polls_until_completed(self, make_client, status_payload, results_payload) -> None:
        handler, calls = _routing_handler(
            ["QUERY_STATE_PENDING", "QUERY_STATE_EXECUTING", "QUERY_STATE_COMPLETED"],
            status_payload,
            results_payload,
            [],
        )

        with patch("dunecli.dune.executor.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            async with make_client(handler) as client:
                status = await QueryExecutor(client, poll_interval=2.0).wait_for_completion(
                    "01J5ZMD33P6J413G1KQM6QTE4S"
                )

        assert status.state == ExecutionState.COMPLETED
        assert calls["status"] == 3
        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(2.0)

    @pytest.mark.asyncio()
    @pytest.mark.parametrize(
        "state", ["QUERY_STATE_FAILED", "QUERY_STATE_CANCELLED", "QUERY_STATE_EXPIRED"]
    )
    async def test_failed_state_raises(
        self, make_client, status_payload, results_payload, state: str
    ) -> None:
        handler, _ = _routing_handler(["QUERY_STATE_EXECUTING", state], status_payload, results_payload, [])

        with patch("dunecli.dune.executor.asyncio.sleep", new_callable=AsyncMock):
            async with make_client(handler) as client:
                with pytest.raises(ExecutionError) as exc_info:
                    await QueryExecutor(client).wait_for_completion("01J5ZMD33P6J413G1KQM6QTE4S")

        assert exc_info.value.state == state

    @pytest.mark.asyncio()
    async def test_gives_up_after_max_polls(self, make_client, status_payload, results_payload) -> None:
        handler, calls = _routing_handler(["QUERY_STATE_EXECUTING"], status_payload, results_payload, [])

        with patch("dunecli.dune.executor.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            async with make_client(handler) as client:
                with pytest.raises(ExecutionError, match="did not finish after 3 polls"):
                    await QueryExecutor(client, max_polls=3).wait_for_completion(
                        "01J5ZMD33P6J413G1KQM6QTE4S"
                    )

        assert calls["status"] == 3
        assert mock_sleep.await_count == 2


class TestExecuteAndWait:
    @pytest.mark.asyncio()
    async def test_returns_results(self, make_client, status_payload, results_payload, sample_rows) -> None:
        handler, calls = _routing_handler(
            ["QUERY_STATE_EXECUTING", "QUERY_STATE_COMPLETED"],
            status_payload,
            results_payload,
            sample_rows,
        )

        with patch("dunecli.dune.executor.asyncio.sleep", new_callable=AsyncMock):
            async with make_client(handler) as client:
                result = await QueryExecutor(client).execute_and_wait(
                    ExecutionRequest.build(3998990), ResultFetcher(client), peak=True
                )

        assert result.row_count == 25
        assert calls == {"execute": 1, "status": 2, "results": 1}

    @pytest.mark.asyncio()
    async def test_fetch_error_gets_note(self, make_client, status_payload) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/execute"):
                return httpx.Response(200, json={"execution_id": "01HEXEC", "state": "QUERY_STATE_PENDING"})
            if request.url.path.endswith("/status"):
                return httpx.Response(200, json=status_payload("QUERY_STATE_COMPLETED"))
            return httpx.Response(500, json={"error": "internal"})

        async with make_client(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await QueryExecutor(client).execute_and_wait(
                    ExecutionRequest.build(1), ResultFetcher(client)
                )

        assert exc_info.value.status_code == 500
        assert any("01HEXEC" in note for note in exc_info.value.__notes__)
