"""CSV storage for Dune result sets.

Header row = result column names, one row per record. Values are
stringified per their JSON type:

    string → as-is, number → JSON form, bool → true/false,
    null → empty, array/object → compact JSON
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from dunecli.core.exceptions import IoError

if TYPE_CHECKING:
    from dunecli.dune.models import ResultSet


def stringify_value(value: Any) -> str:
    """JSON 값 → CSV 셀 문자열."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return json.dumps(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def save_csv(result: ResultSet, path: Path | str, *, delimiter: str = ",") -> Path:
    """ResultSet을 CSV로 저장.

    부모 디렉토리를 생성하고, 기존 파일은 덮어씁니다. 컬럼에 없는 키는
    무시되고, 행에 없는 컬럼은 빈 값으로 채웁니다.

    Args:
        result: 저장할 결과
        path: CSV 파일 경로
        delimiter: 구분자 (기본: ",")

    Returns:
        저장된 파일 경로

    Raises:
        IoError: 저장 실패
    """
    path = Path(path)
    columns = result.columns or (list(result.rows[0].keys()) if result.rows else [])

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, delimiter=delimiter)
            if columns:
                writer.writerow(columns)
            for row in result.rows:
                writer.writerow([stringify_value(row.get(col)) for col in columns])
    except OSError as e:
        raise IoError(
            f"Failed to write CSV to {path}",
            context={"path": str(path), "error": str(e)},
        ) from e

    logger.info(f"CSV saved: {path} ({len(result.rows):,} rows, {len(columns)} columns)")
    return path
