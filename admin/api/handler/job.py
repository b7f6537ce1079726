"""
스케줄 잡 관리 비즈니스 로직 핸들러

저장소 변경을 커밋한 뒤 스케줄러에 알려 타이머를 다시 설정합니다.
스케줄러 없이(Admin 단독 실행) 생성된 핸들러는 저장소만 변경하며,
스케줄러 프로세스가 주기적 동기화로 변경을 반영합니다.
"""

import logging
from datetime import datetime, timezone

import cron
from admin.api.model.job import JobCreateRequest, JobResponse, JobUpdateRequest
from admin.exception import (
    JobNotFoundError,
    JobStatusError,
    JobValidationError,
    SchedulerUnavailableError,
)
from database import transactional
from scheduler import Scheduler
from store import JobStore
from store.model import JobChanges, JobDefinition, JobFilter, JobStatus

logger = logging.getLogger(__name__)


class JobHandler:
    """스케줄 잡 관리 핸들러"""

    def __init__(self, scheduler: Scheduler | None = None, store: JobStore | None = None):
        self._scheduler = scheduler
        self._store = store or JobStore()

    # ============================================
    # 조회
    # ============================================

    async def get(self, job_id: int) -> JobResponse:
        """
        잡 상세 조회

        Raises:
            JobNotFoundError: 없거나 삭제된 잡
        """
        job = await self._store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return self._to_response(job)

    async def list_all(self) -> list[JobResponse]:
        """삭제되지 않은 전체 잡"""
        jobs = await self._store.list_all()
        return [self._to_response(job) for job in jobs]

    async def list_jobs(
        self,
        job_filter: JobFilter | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[JobResponse], int]:
        """잡 목록 페이징 조회"""
        jobs, total = await self._store.list_jobs(job_filter, page=page, limit=limit)
        return [self._to_response(job) for job in jobs], total

    # ============================================
    # 변경
    # ============================================

    async def create(self, request: JobCreateRequest) -> JobResponse:
        """
        잡 생성 (정상 상태로 저장 후 바로 스케줄)

        Raises:
            InvalidCronError: 크론 표현식 오류
        """
        self._validate_cron(request.cron_expression)

        job = await self._store.create(
            bean_name=request.bean_name,
            method_name=request.method_name,
            cron_expression=request.cron_expression,
            params=request.params,
            remark=request.remark,
        )
        logger.info(f"Created job: id={job.id}, handler={job.handler_key}, cron='{job.cron_expression}'")

        if self._scheduler is not None:
            self._scheduler.schedule(job)
        return self._to_response(job)

    async def update(self, job_id: int | None, request: JobUpdateRequest) -> JobResponse:
        """
        잡 수정 (크론이 바뀐 정상 상태 잡만 타이머 재설정)

        Raises:
            JobValidationError: job_id 누락
            JobNotFoundError: 없거나 삭제된 잡
            InvalidCronError: 크론 표현식 오류
        """
        if job_id is None:
            raise JobValidationError("jobId is required")

        if request.cron_expression is not None:
            self._validate_cron(request.cron_expression)

        changes = JobChanges(
            bean_name=request.bean_name,
            method_name=request.method_name,
            params=request.params,
            cron_expression=request.cron_expression,
            remark=request.remark,
        )
        job, cron_changed = await self._apply_update(job_id, changes)
        logger.info(f"Updated job: id={job_id}, cron_changed={cron_changed}")

        if self._scheduler is not None and cron_changed and job.is_enabled:
            self._scheduler.schedule(job)
        return self._to_response(job)

    async def pause(self, job_id: int) -> JobResponse:
        """
        잡 일시정지 (실행 중인 호출은 끝까지 실행됨)

        Raises:
            JobNotFoundError: 없거나 삭제된 잡
            JobStatusError: 이미 일시정지 상태
        """
        job = await self._change_status(job_id, JobStatus.PAUSED, "pause")
        logger.info(f"Paused job: id={job_id}")

        if self._scheduler is not None:
            self._scheduler.pause(job.id)
        return self._to_response(job)

    async def resume(self, job_id: int) -> JobResponse:
        """
        잡 재개 (현재 시각 기준으로 다음 실행 시점 계산, 놓친 발화는 실행하지 않음)

        Raises:
            JobNotFoundError: 없거나 삭제된 잡
            JobStatusError: 이미 정상 상태
            InvalidCronError: 저장된 크론 표현식 오류
        """
        job = await self._change_status(job_id, JobStatus.NORMAL, "resume")
        logger.info(f"Resumed job: id={job_id}")

        if self._scheduler is not None:
            self._scheduler.schedule(job)
        return self._to_response(job)

    async def delete(self, job_id: int) -> None:
        """
        잡 소프트 삭제 (실행 이력은 유지)

        Raises:
            JobNotFoundError: 없거나 이미 삭제된 잡
        """
        job = await self._store.soft_delete(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        logger.info(f"Deleted job: id={job_id}")

        if self._scheduler is not None:
            self._scheduler.cancel(job_id)

    async def trigger(self, job_id: int) -> JobResponse:
        """
        잡 1회 즉시 실행 (일시정지된 잡은 실행 불가)

        Raises:
            JobNotFoundError: 없거나 삭제된 잡
            JobStatusError: 일시정지 상태
            SchedulerUnavailableError: 이 프로세스에 스케줄러가 없음
        """
        if self._scheduler is None:
            raise SchedulerUnavailableError("trigger job")

        job = await self._store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.status != JobStatus.NORMAL:
            raise JobStatusError(job_id, job.status.name, "trigger")

        started = self._scheduler.trigger(job)
        logger.info(f"Triggered job: id={job_id}, started={started}")
        return self._to_response(job)

    # ============================================
    # 내부
    # ============================================

    @transactional
    async def _apply_update(self, job_id: int, changes: JobChanges) -> tuple[JobDefinition, bool]:
        """조회와 수정을 하나의 쓰기 트랜잭션으로 실행"""
        before = await self._store.get(job_id)
        if before is None:
            raise JobNotFoundError(job_id)

        after = await self._store.update(job_id, changes)
        return after, cron.parse(after.cron_expression) != cron.parse(before.cron_expression)

    @transactional
    async def _change_status(self, job_id: int, status: JobStatus, action: str) -> JobDefinition:
        """상태 확인과 변경을 하나의 쓰기 트랜잭션으로 실행"""
        job = await self._store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        if job.status == status:
            raise JobStatusError(job_id, status.name, action)

        if status == JobStatus.NORMAL:
            self._validate_cron(job.cron_expression)

        return await self._store.set_status(job_id, status)

    def _validate_cron(self, expression: str) -> None:
        cron.validate(expression, now=self._now())

    def _now(self) -> datetime:
        if self._scheduler is not None:
            return self._scheduler.now
        return datetime.now(timezone.utc)

    def _to_response(self, job: JobDefinition) -> JobResponse:
        next_fire_time = None
        state = None
        if self._scheduler is not None:
            next_fire_time = self._scheduler.next_fire_time(job.id)
            job_state = self._scheduler.state(job.id)
            state = job_state.value if job_state else None

        return JobResponse(
            job_id=job.id,
            bean_name=job.bean_name,
            method_name=job.method_name,
            params=job.params,
            cron_expression=job.cron_expression,
            status=int(job.status),
            remark=job.remark,
            created_at=job.created_at,
            next_fire_time=next_fire_time,
            state=state,
        )
