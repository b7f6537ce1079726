"""Admin API 라우터 (스케줄 잡 관리 API)"""

import logging
import sqlite3

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from admin.api.handler import JobHandler, LogHandler
from admin.api.model.common import PageResponse
from admin.api.model.job import JobCreateRequest, JobResponse, JobUpdateRequest
from admin.api.model.log import LogResponse
from admin.exception import (
    JobNotFoundError,
    JobStatusError,
    JobValidationError,
    SchedulerUnavailableError,
)
from cron import InvalidCronError
from database import DatabaseError, get_db
from store.model import JobFilter, LogFilter

logger = logging.getLogger(__name__)

router = APIRouter()
job_router = APIRouter(prefix="/api/admin/schedule/job", tags=["Schedule Job"])


def get_job_handler(request: Request) -> JobHandler:
    return request.app.state.job_handler


def get_log_handler(request: Request) -> LogHandler:
    return request.app.state.log_handler


def _store_unavailable(e: DatabaseError) -> HTTPException:
    logger.error(f"Store unavailable: {e}")
    return HTTPException(status_code=503, detail=str(e))


# ============================================
# JOB API
# ============================================

@job_router.get("/list", response_model=PageResponse[JobResponse])
async def list_jobs(
    job_id: int | None = Query(default=None, alias="jobId", description="잡 ID 필터"),
    bean_name: str | None = Query(default=None, alias="beanName", description="빈 이름 필터"),
    method_name: str | None = Query(default=None, alias="methodName", description="메서드 이름 필터"),
    status: int | None = Query(default=None, ge=0, le=1, description="상태 필터 (0=정상, 1=일시정지)"),
    page: int = Query(default=1, ge=1, description="페이지 번호"),
    limit: int = Query(default=20, ge=1, le=100, description="페이지 크기"),
    handler: JobHandler = Depends(get_job_handler),
):
    """잡 목록 조회"""
    job_filter = JobFilter(job_id=job_id, bean_name=bean_name, method_name=method_name, status=status)
    try:
        items, total = await handler.list_jobs(job_filter, page=page, limit=limit)
    except DatabaseError as e:
        raise _store_unavailable(e)
    return PageResponse[JobResponse].create(items, total, page, limit)


@job_router.get("/info/{job_id}", response_model=JobResponse)
async def get_job(job_id: int, handler: JobHandler = Depends(get_job_handler)):
    """잡 상세 조회"""
    try:
        return await handler.get(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except DatabaseError as e:
        raise _store_unavailable(e)


@job_router.post("/add", response_model=JobResponse)
async def create_job(request: JobCreateRequest, handler: JobHandler = Depends(get_job_handler)):
    """잡 생성"""
    try:
        return await handler.create(request)
    except InvalidCronError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except DatabaseError as e:
        raise _store_unavailable(e)


@job_router.post("/update", response_model=JobResponse)
async def update_job(request: JobUpdateRequest, handler: JobHandler = Depends(get_job_handler)):
    """잡 수정"""
    try:
        return await handler.update(request.job_id, request)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except (InvalidCronError, JobValidationError) as e:
        raise HTTPException(status_code=400, detail=e.message)
    except DatabaseError as e:
        raise _store_unavailable(e)


@job_router.post("/suspend/{job_id}", response_model=JobResponse)
async def pause_job(job_id: int, handler: JobHandler = Depends(get_job_handler)):
    """잡 일시정지"""
    try:
        return await handler.pause(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except JobStatusError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except DatabaseError as e:
        raise _store_unavailable(e)


@job_router.post("/start/{job_id}", response_model=JobResponse)
async def resume_job(job_id: int, handler: JobHandler = Depends(get_job_handler)):
    """잡 재개"""
    try:
        return await handler.resume(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except (JobStatusError, InvalidCronError) as e:
        raise HTTPException(status_code=400, detail=e.message)
    except DatabaseError as e:
        raise _store_unavailable(e)


@job_router.post("/delete/{job_id}")
async def delete_job(job_id: int, handler: JobHandler = Depends(get_job_handler)):
    """잡 삭제 (실행 이력은 유지)"""
    try:
        await handler.delete(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except DatabaseError as e:
        raise _store_unavailable(e)
    return {"jobId": job_id, "deleted": True}


@job_router.post("/trig/{job_id}", response_model=JobResponse)
async def trigger_job(job_id: int, handler: JobHandler = Depends(get_job_handler)):
    """잡 1회 즉시 실행"""
    try:
        return await handler.trigger(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except JobStatusError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except SchedulerUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.message)
    except DatabaseError as e:
        raise _store_unavailable(e)


# ============================================
# LOG API
# ============================================

@job_router.get("/log/list", response_model=PageResponse[LogResponse])
async def list_logs(
    job_id: int | None = Query(default=None, alias="jobId", description="잡 ID 필터"),
    bean_name: str | None = Query(default=None, alias="beanName", description="빈 이름 필터"),
    method_name: str | None = Query(default=None, alias="methodName", description="메서드 이름 필터"),
    status: int | None = Query(default=None, ge=0, le=1, description="결과 필터 (0=성공, 1=실패)"),
    page: int = Query(default=1, ge=1, description="페이지 번호"),
    limit: int = Query(default=20, ge=1, le=100, description="페이지 크기"),
    handler: LogHandler = Depends(get_log_handler),
):
    """실행 이력 목록 조회 (최신순)"""
    log_filter = LogFilter(job_id=job_id, bean_name=bean_name, method_name=method_name, status=status)
    try:
        items, total = await handler.list_logs(log_filter, page=page, limit=limit)
    except DatabaseError as e:
        raise _store_unavailable(e)
    return PageResponse[LogResponse].create(items, total, page, limit)


router.include_router(job_router)


# ============================================
# Health Check
# ============================================

@router.get("/health", tags=["Health"])
async def health_check(request: Request):
    """서버 상태 확인 (liveness probe)"""
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "healthy",
        "scheduler": "running" if scheduler is not None and scheduler.is_running else "stopped",
        "runningJobs": scheduler.running_count if scheduler is not None else 0,
    }


@router.get("/ready", tags=["Health"])
async def ready_check():
    """DB 연결 상태 확인 (readiness probe)"""
    try:
        db = get_db()
        async with db.transaction(readonly=True) as ctx:
            await ctx.fetch_one("SELECT 1")
        return {"status": "ready", "database": "ok"}
    except (DatabaseError, sqlite3.Error) as e:
        # 트랜잭션 데코레이터 밖이라 드라이버 예외가 그대로 올라옴
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "error": str(e)}
        )
