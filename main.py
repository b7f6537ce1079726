"""
schedjob 통합 진입점

Scheduler와 Admin API를 한 프로세스에서 실행합니다.
함께 실행하면 Admin의 잡 변경이 즉시 스케줄러 타이머에 반영됩니다.

사용법:
    python main.py                  # 전체 실행
    python main.py scheduler        # Scheduler만
    python main.py admin            # Admin API만 (스케줄러 프로세스가 동기화로 반영)
    python main.py scheduler admin  # 복수 선택
"""

import asyncio
import logging
import signal
import sys

from common.config import load_config
from common.logging import setup_logging_from_config
from database.registry import DatabaseRegistry
from scheduler import Scheduler, SchedulerConfig
from worker.base import get_registered_handlers, load_handlers

logger = logging.getLogger(__name__)

VALID_MODULES = ("scheduler", "admin")


async def run_scheduler(scheduler: Scheduler, stop_event: asyncio.Event):
    """Scheduler 실행"""
    async def wait_stop():
        await stop_event.wait()
        await scheduler.stop()

    stopper = asyncio.create_task(wait_stop())
    try:
        await scheduler.start()
    finally:
        stopper.cancel()


async def run_admin(config: dict, scheduler: Scheduler | None, stop_event: asyncio.Event):
    """Admin API 실행"""
    import uvicorn
    from admin.main import create_app

    admin_config = config.get("admin", {})
    uv_config = uvicorn.Config(
        create_app(config, scheduler=scheduler),
        host=admin_config.get("host", "0.0.0.0"),
        port=admin_config.get("port", 8080),
        log_level="info",
        log_config=None,
    )
    server = uvicorn.Server(uv_config)

    async def wait_stop():
        await stop_event.wait()
        server.should_exit = True

    stopper = asyncio.create_task(wait_stop())
    try:
        await server.serve()
    finally:
        stopper.cancel()


async def main(modules: list[str]):
    """메인 함수"""
    config = load_config()
    setup_logging_from_config(config)

    await DatabaseRegistry.init_from_config(config, ["default"])

    scheduler = None
    if "scheduler" in modules:
        scheduler_config = SchedulerConfig(**config.get("scheduler", {}))
        for package_name in scheduler_config.handler_packages:
            load_handlers(package_name)
        logger.info(f"Registered handlers: {sorted(get_registered_handlers())}")
        scheduler = Scheduler(scheduler_config)

    # 종료 이벤트
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    # Windows는 add_signal_handler를 지원하지 않음
    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

    tasks = []
    if scheduler is not None:
        tasks.append(asyncio.create_task(run_scheduler(scheduler, stop_event)))
        logger.info("Scheduler started")
    if "admin" in modules:
        tasks.append(asyncio.create_task(run_admin(config, scheduler, stop_event)))
        logger.info("Admin API started")

    try:
        await asyncio.gather(*tasks)
    except asyncio.CancelledError:
        logger.info("Tasks cancelled")
    finally:
        await DatabaseRegistry.close_all()
        logger.info("All modules stopped")


def parse_modules(args: list[str]) -> list[str] | None:
    """실행할 모듈 목록 (인자가 없으면 전체, 잘못된 인자만 있으면 None)"""
    if not args:
        return list(VALID_MODULES)
    modules = [m for m in args if m in VALID_MODULES]
    return modules or None


if __name__ == "__main__":
    modules = parse_modules(sys.argv[1:])
    if modules is None:
        print("Usage: python main.py [scheduler] [admin]")
        sys.exit(1)

    print(f"Starting schedjob: {', '.join(modules)}")
    try:
        asyncio.run(main(modules))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
