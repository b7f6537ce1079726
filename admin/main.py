"""
Admin API 서버

스케줄러와 같은 프로세스에서 실행하면(main.py) 잡 변경이 즉시 타이머에 반영되고,
단독 실행하면 저장소만 변경하며 스케줄러 프로세스가 주기적 동기화로 반영합니다.

실행 방법:
    python main.py admin
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from admin.api.handler import JobHandler, LogHandler
from admin.api.router.api import router
from common.config import load_config
from database.registry import DatabaseRegistry
from scheduler import Scheduler

logger = logging.getLogger(__name__)


def create_app(config: dict[str, Any] | None = None, scheduler: Scheduler | None = None) -> FastAPI:
    """
    FastAPI 앱 생성

    Args:
        config: 병합된 설정 (None이면 config/ 디렉토리에서 로드)
        scheduler: 같은 프로세스에서 실행 중인 스케줄러 (없으면 저장소만 변경)
    """
    config = config if config is not None else load_config()
    admin_config = config.get('admin', {})

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # 이미 초기화된 경우(스케줄러와 함께 실행) DB는 그대로 사용
        owns_database = not DatabaseRegistry.has('default')
        if owns_database:
            await DatabaseRegistry.init_from_config(config, ['default'])
            logger.info("Database initialized")

        yield

        if owns_database:
            await DatabaseRegistry.close_all()
            logger.info("Database closed")

    app = FastAPI(
        title="schedjob Admin API",
        description="스케줄 잡 관리 Admin API",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS 설정
    cors_config = admin_config.get('cors', {})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config.get('origins', ['*']),
        allow_credentials=cors_config.get('allow_credentials', False),
        allow_methods=cors_config.get('allow_methods', ['*']),
        allow_headers=cors_config.get('allow_headers', ['*']),
    )

    app.state.scheduler = scheduler
    app.state.job_handler = JobHandler(scheduler=scheduler)
    app.state.log_handler = LogHandler()

    app.include_router(router)
    return app
