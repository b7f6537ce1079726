"""
잡 정의 저장소 (schedule_job)

모든 메서드는 자체 트랜잭션으로 실행되며, 이미 열린 트랜잭션 안에서
호출되면 그 트랜잭션에 참여합니다. 따라서 호출자가 @transactional로
감싸면 조회-검증-수정을 하나의 쓰기 트랜잭션으로 묶을 수 있습니다.
"""

import logging
from pathlib import Path

import aiosql

from database import get_connection, transactional, transactional_readonly
from store.model import JobChanges, JobDefinition, JobFilter, JobStatus

logger = logging.getLogger(__name__)

SQL_PATH = Path(__file__).parent / "sql" / "job.sql"


class JobStore:
    """잡 정의 CRUD"""

    def __init__(self):
        self._queries = aiosql.from_path(str(SQL_PATH), "aiosqlite")

    @transactional
    async def create(
        self,
        bean_name: str,
        method_name: str,
        cron_expression: str,
        params: str | None = None,
        remark: str | None = None,
        status: JobStatus = JobStatus.NORMAL,
    ) -> JobDefinition:
        """잡 생성 후 저장된 엔티티 반환"""
        conn = get_connection().connection

        await self._queries.insert_job(
            conn,
            bean_name=bean_name,
            method_name=method_name,
            params=params,
            cron_expression=cron_expression,
            status=int(status),
            remark=remark,
        )
        job_id = await self._queries.get_last_insert_id(conn)

        row = await self._queries.get_job_by_id(conn, job_id=job_id)
        return JobDefinition.from_row(row)

    @transactional_readonly
    async def get(self, job_id: int, include_deleted: bool = False) -> JobDefinition | None:
        """ID로 조회 (기본적으로 소프트 삭제된 잡은 제외)"""
        conn = get_connection().connection

        row = await self._queries.get_job_by_id(conn, job_id=job_id)
        if row is None:
            return None

        job = JobDefinition.from_row(row)
        if job.is_deleted and not include_deleted:
            return None
        return job

    @transactional
    async def update(self, job_id: int, changes: JobChanges) -> JobDefinition | None:
        """
        변경 항목만 반영 (None 항목은 기존 값 유지)

        Returns:
            수정된 엔티티, 없거나 삭제된 잡이면 None
        """
        conn = get_connection().connection

        row = await self._queries.get_job_by_id(conn, job_id=job_id)
        if row is None or row['is_deleted']:
            return None

        current = JobDefinition.from_row(row)
        merged = current.model_copy(update=changes.model_dump(exclude_none=True))

        await self._queries.update_job(
            conn,
            job_id=job_id,
            bean_name=merged.bean_name,
            method_name=merged.method_name,
            params=merged.params,
            cron_expression=merged.cron_expression,
            remark=merged.remark,
        )

        row = await self._queries.get_job_by_id(conn, job_id=job_id)
        return JobDefinition.from_row(row)

    @transactional
    async def set_status(self, job_id: int, status: JobStatus) -> JobDefinition | None:
        """상태 변경"""
        conn = get_connection().connection

        row = await self._queries.get_job_by_id(conn, job_id=job_id)
        if row is None or row['is_deleted']:
            return None

        await self._queries.update_job_status(conn, job_id=job_id, status=int(status))

        row = await self._queries.get_job_by_id(conn, job_id=job_id)
        return JobDefinition.from_row(row)

    @transactional
    async def soft_delete(self, job_id: int) -> JobDefinition | None:
        """소프트 삭제 (행과 실행 이력은 유지)"""
        conn = get_connection().connection

        row = await self._queries.get_job_by_id(conn, job_id=job_id)
        if row is None or row['is_deleted']:
            return None

        await self._queries.soft_delete_job(conn, job_id=job_id)

        row = await self._queries.get_job_by_id(conn, job_id=job_id)
        return JobDefinition.from_row(row)

    @transactional_readonly
    async def list_jobs(
        self,
        job_filter: JobFilter | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[JobDefinition], int]:
        """삭제되지 않은 잡 페이징 조회 (최신 ID 순)"""
        conn = get_connection().connection
        conditions = _conditions(job_filter or JobFilter())

        total_row = await self._queries.count_jobs(conn, **conditions)
        total = total_row['cnt'] if total_row else 0

        rows = await self._queries.get_jobs_paged(
            conn, **conditions, limit=limit, offset=(page - 1) * limit
        )
        return [JobDefinition.from_row(row) for row in rows], total

    @transactional_readonly
    async def list_all(self) -> list[JobDefinition]:
        """삭제되지 않은 전체 잡 (최신 ID 순)"""
        conn = get_connection().connection
        rows = await self._queries.get_all_jobs(conn)
        return [JobDefinition.from_row(row) for row in rows]

    @transactional_readonly
    async def list_enabled(self) -> list[JobDefinition]:
        """스케줄 대상 잡 (정상 상태, 미삭제)"""
        conn = get_connection().connection
        rows = await self._queries.get_enabled_jobs(conn)
        return [JobDefinition.from_row(row) for row in rows]


def _conditions(job_filter: JobFilter) -> dict:
    return {
        'job_id': job_filter.job_id,
        'bean_name': job_filter.bean_name,
        'method_name': job_filter.method_name,
        'status': int(job_filter.status) if job_filter.status is not None else None,
    }
