"""
실행 이력 저장소 (schedule_job_log)

append-only: 수정/삭제 연산을 제공하지 않습니다.
"""

import logging
from pathlib import Path

import aiosql

from database import get_connection, transactional, transactional_readonly
from store.model import ExecutionRecord, LogFilter

logger = logging.getLogger(__name__)

SQL_PATH = Path(__file__).parent / "sql" / "log.sql"


class ExecutionLogStore:
    """실행 이력 기록/조회"""

    def __init__(self):
        self._queries = aiosql.from_path(str(SQL_PATH), "aiosqlite")

    @transactional
    async def append(self, record: ExecutionRecord) -> ExecutionRecord:
        """
        실행 이력 추가

        attempt는 같은 잡의 직전 값 + 1로 INSERT 안에서 계산됩니다.

        Returns:
            id, attempt, created_at이 채워진 레코드
        """
        conn = get_connection().connection

        await self._queries.insert_log(
            conn,
            job_id=record.job_id,
            bean_name=record.bean_name,
            method_name=record.method_name,
            params=record.params,
            status=int(record.status),
            error=record.error,
            duration_ms=record.duration_ms,
        )
        log_id = await self._queries.get_last_insert_id(conn)

        row = await self._queries.get_log_by_id(conn, log_id=log_id)
        stored = ExecutionRecord.from_row(row)
        logger.debug(
            f"Execution record appended: log_id={stored.id}, job_id={stored.job_id}, "
            f"status={stored.status.name}, attempt={stored.attempt}"
        )
        return stored

    @transactional_readonly
    async def list_records(
        self,
        log_filter: LogFilter | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[ExecutionRecord], int]:
        """실행 이력 페이징 조회 (최신순)"""
        conn = get_connection().connection
        log_filter = log_filter or LogFilter()
        conditions = {
            'job_id': log_filter.job_id,
            'bean_name': log_filter.bean_name,
            'method_name': log_filter.method_name,
            'status': int(log_filter.status) if log_filter.status is not None else None,
        }

        total_row = await self._queries.count_logs(conn, **conditions)
        total = total_row['cnt'] if total_row else 0

        rows = await self._queries.get_logs_paged(
            conn, **conditions, limit=limit, offset=(page - 1) * limit
        )
        return [ExecutionRecord.from_row(row) for row in rows], total
