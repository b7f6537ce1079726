"""
잡 실행기 모듈

스케줄러가 발화시킨 개별 잡 실행 1회를 담당합니다.
핸들러 조회 -> 실행 -> 실행 이력 1건 기록 순서로 진행하며,
핸들러 예외는 실패 이력으로 변환될 뿐 호출자에게 전파되지 않습니다.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from typing import Any

from database import DatabaseError
from store import ExecutionLogStore, JobStore
from store.model import ExecutionRecord, ExecutionStatus, JobDefinition, JobStatus
from worker.base import resolve
from worker.exception import HandlerExecutionError, HandlerNotFoundError

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 2000


class Executor:
    """잡 실행기"""

    def __init__(
        self,
        job_store: JobStore,
        log_store: ExecutionLogStore,
        log_timeout_seconds: float = 10.0,
    ):
        self._job_store = job_store
        self._log_store = log_store
        self._log_timeout_seconds = log_timeout_seconds

    async def execute(self, job_id: int, manual: bool = False) -> ExecutionRecord | None:
        """
        잡 실행

        Args:
            job_id: 실행할 잡 ID
            manual: 수동 실행 여부 (로그 구분용, 일시정지된 잡은 수동 실행도 건너뜀)

        Returns:
            기록된 실행 이력, 실행하지 않았거나 기록에 실패하면 None
        """
        job = await self._load_job(job_id)
        if job is None:
            return None

        if job.is_deleted:
            logger.info(f"Skipping fire of deleted job: job_id={job_id}")
            return None

        if job.status != JobStatus.NORMAL:
            logger.info(f"Skipping fire of paused job: job_id={job_id}, manual={manual}")
            return None

        key = job.handler_key
        logger.info(f"Starting job execution: job_id={job_id}, handler={key}, manual={manual}")

        # 핸들러 조회(클래스 핸들러 생성 포함)와 실행 중 예외는 모두 실패 이력
        fn = None
        started = time.monotonic()
        try:
            fn = resolve(key)
            if fn is not None:
                await _invoke(fn, job.params)
        except Exception as e:
            duration_ms = _elapsed_ms(started)
            error = HandlerExecutionError(key, e)
            logger.error(
                f"Job execution failed: job_id={job_id}, handler={key}, error={error.message}",
                exc_info=True,
            )
            return await self._record(job, ExecutionStatus.FAILURE, error.message, duration_ms)

        if fn is None:
            error = HandlerNotFoundError(key)
            logger.error(f"Handler not found: job_id={job_id}, handler={key}")
            return await self._record(job, ExecutionStatus.FAILURE, error.message, 0)

        duration_ms = _elapsed_ms(started)
        logger.info(f"Job execution completed: job_id={job_id}, handler={key}, duration_ms={duration_ms}")
        return await self._record(job, ExecutionStatus.SUCCESS, None, duration_ms)

    async def _load_job(self, job_id: int) -> JobDefinition | None:
        """발화 시점의 잡 정의 재조회 (저장소 장애 시 이번 발화는 건너뜀)"""
        try:
            job = await self._job_store.get(job_id, include_deleted=True)
        except DatabaseError as e:
            logger.warning(f"Could not load job before firing, skipping this fire: job_id={job_id}, error={e}")
            return None

        if job is None:
            logger.warning(f"Job not found at fire time: job_id={job_id}")
        return job

    async def _record(
        self,
        job: JobDefinition,
        status: ExecutionStatus,
        error: str | None,
        duration_ms: int,
    ) -> ExecutionRecord | None:
        """
        실행 이력 1건 기록

        기록 실패는 로그로만 남기고 재시도하지 않습니다.
        """
        record = ExecutionRecord(
            job_id=job.id,
            bean_name=job.bean_name,
            method_name=job.method_name,
            params=job.params,
            status=status,
            error=error[:MAX_ERROR_LENGTH] if error else None,
            duration_ms=duration_ms,
        )

        try:
            return await asyncio.wait_for(
                self._log_store.append(record),
                timeout=self._log_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Timed out appending execution record after {self._log_timeout_seconds}s: "
                f"job_id={job.id}, status={status.name}, error={record.error}"
            )
        except DatabaseError as e:
            logger.error(
                f"Failed to append execution record: job_id={job.id}, "
                f"status={status.name}, error={record.error}, cause={e}"
            )
        return None


async def _invoke(fn: Callable, params: str | None) -> Any:
    """코루틴 함수는 await, 일반 함수는 스레드에서 실행"""
    if inspect.iscoroutinefunction(fn):
        return await fn(params)

    result = await asyncio.to_thread(fn, params)
    if inspect.isawaitable(result):
        result = await result
    return result


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
