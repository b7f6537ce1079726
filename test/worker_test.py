"""
핸들러 레지스트리 / Executor 테스트

테스트 항목:
1. @handler 데코레이터 등록 (클래스/함수)
2. resolve() (실행마다 새 인스턴스, 미등록 키는 None)
3. 핸들러 키 형식 검사
4. load_handlers() 패키지 로드
5. Executor 성공/실패/핸들러 없음/핸들러 생성 실패 기록
6. 일시정지/삭제된 잡 발화 건너뜀 (수동 실행 포함)
7. 동기 핸들러는 워커 스레드에서 실행
8. 실행 이력 기록 타임아웃/저장소 장애

실행: python -m pytest test/worker_test.py -v
"""

import asyncio
import logging
import threading

import pytest

from database import QueryExecutionError
from store import ExecutionLogStore, JobStore
from store.model import ExecutionStatus, JobStatus, LogFilter
from worker.base import (
    BaseHandler,
    get_registered_handlers,
    handler,
    handler_key,
    load_handlers,
    register,
    resolve,
    split_handler_key,
)
from worker.exception import InvalidHandlerKeyError
from worker.executor import Executor

logger = logging.getLogger(__name__)


# ============================================================
# Handler Registry Tests
# ============================================================

class TestHandlerRegistry:
    """핸들러 레지스트리 테스트"""

    def test_handler_decorator_registers_class(self, handler_registry):
        @handler("test.classHandler")
        class ClassHandler(BaseHandler):
            async def execute(self, params):
                return params

        assert get_registered_handlers()["test.classHandler"] is ClassHandler

    def test_resolve_creates_fresh_instance(self, handler_registry):
        @handler("test.fresh")
        class FreshHandler(BaseHandler):
            async def execute(self, params):
                return id(self)

        first = resolve("test.fresh")
        second = resolve("test.fresh")
        assert isinstance(first.__self__, FreshHandler)
        assert first.__self__ is not second.__self__

    def test_function_handler(self, handler_registry):
        @handler("test.func")
        async def func(params):
            return params

        assert resolve("test.func") is func

    def test_resolve_unknown_returns_none(self):
        assert resolve("ghost.run") is None

    def test_register_plain_callable(self, handler_registry):
        register(handler_key("report", "daily"), print)
        assert resolve("report.daily") is print

    def test_invalid_key_rejected(self, handler_registry):
        with pytest.raises(InvalidHandlerKeyError):
            register("nodot", print)
        with pytest.raises(InvalidHandlerKeyError):
            register("bean.", print)

    def test_non_callable_rejected(self, handler_registry):
        with pytest.raises(TypeError):
            register("bean.method", "not callable")

    def test_split_handler_key(self):
        assert split_handler_key("order.autoCancel") == ("order", "autoCancel")
        assert split_handler_key("com.shop.order.autoCancel") == ("com.shop.order", "autoCancel")

    def test_load_handlers(self, handler_registry):
        loaded = load_handlers("worker.job")

        assert "worker.job.demo" in loaded
        handlers = get_registered_handlers()
        assert "demo.ping" in handlers
        assert "demo.echo" in handlers


# ============================================================
# Executor Tests
# ============================================================

class SlowLogStore(ExecutionLogStore):
    """기록이 끝나지 않는 이력 저장소"""

    async def append(self, record):
        await asyncio.sleep(10)


class BrokenJobStore(JobStore):
    """조회가 실패하는 잡 저장소"""

    async def get(self, job_id, include_deleted=False):
        raise QueryExecutionError("database is locked")


async def _records(job_id):
    records, _ = await ExecutionLogStore().list_records(LogFilter(job_id=job_id))
    return records


class TestExecutor:
    """Executor 테스트"""

    @pytest.mark.asyncio
    async def test_success_recorded(self, database, handler_registry):
        received = []

        @handler("test.ok")
        class OkHandler(BaseHandler):
            async def execute(self, params):
                received.append(params)

        job = await JobStore().create("test", "ok", "* * * * *", params='{"x": 1}')
        record = await Executor(JobStore(), ExecutionLogStore()).execute(job.id)

        assert received == ['{"x": 1}']
        assert record.status == ExecutionStatus.SUCCESS
        assert record.error is None
        assert record.attempt == 1
        assert record.params == '{"x": 1}'
        assert record.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_failure_recorded(self, database, handler_registry):
        @handler("test.fail")
        async def fail(params):
            raise ValueError("boom")

        job = await JobStore().create("test", "fail", "* * * * *")
        executor = Executor(JobStore(), ExecutionLogStore())

        first = await executor.execute(job.id)
        second = await executor.execute(job.id)

        assert first.status == ExecutionStatus.FAILURE
        assert first.error == "ValueError: boom"
        assert second.attempt == 2

        # 실패해도 잡은 정상 상태 유지
        assert (await JobStore().get(job.id)).status == JobStatus.NORMAL

    @pytest.mark.asyncio
    async def test_handler_not_found_recorded(self, database, handler_registry):
        job = await JobStore().create("ghost", "run", "* * * * *")

        record = await Executor(JobStore(), ExecutionLogStore()).execute(job.id)

        assert record.status == ExecutionStatus.FAILURE
        assert record.error == "Handler not found: ghost.run"
        assert len(await _records(job.id)) == 1

    @pytest.mark.asyncio
    async def test_handler_constructor_error_recorded(self, database, handler_registry):
        """클래스 핸들러 생성자 예외도 실패 이력으로 기록"""
        @handler("test.badInit")
        class BadInitHandler(BaseHandler):
            def __init__(self):
                raise RuntimeError("boom in init")

            async def execute(self, params):
                raise AssertionError("must not run")

        job = await JobStore().create("test", "badInit", "* * * * *")
        record = await Executor(JobStore(), ExecutionLogStore()).execute(job.id)

        assert record.status == ExecutionStatus.FAILURE
        assert record.error == "RuntimeError: boom in init"
        assert len(await _records(job.id)) == 1

    @pytest.mark.asyncio
    async def test_long_error_truncated(self, database, handler_registry):
        @handler("test.verbose")
        async def verbose(params):
            raise RuntimeError("x" * 5000)

        job = await JobStore().create("test", "verbose", "* * * * *")
        record = await Executor(JobStore(), ExecutionLogStore()).execute(job.id)

        assert len(record.error) == 2000

    @pytest.mark.asyncio
    async def test_sync_handler_runs_in_thread(self, database, handler_registry):
        threads = []

        @handler("test.sync")
        def sync_handler(params):
            threads.append(threading.current_thread())
            return params

        job = await JobStore().create("test", "sync", "* * * * *")
        record = await Executor(JobStore(), ExecutionLogStore()).execute(job.id)

        assert record.status == ExecutionStatus.SUCCESS
        assert threads and threads[0] is not threading.main_thread()

    @pytest.mark.asyncio
    async def test_paused_job_skipped_even_if_manual(self, database, handler_registry):
        calls = []

        @handler("test.count")
        async def count(params):
            calls.append(params)

        job = await JobStore().create("test", "count", "* * * * *", status=JobStatus.PAUSED)
        executor = Executor(JobStore(), ExecutionLogStore())

        assert await executor.execute(job.id) is None
        assert await executor.execute(job.id, manual=True) is None
        assert calls == []
        assert await _records(job.id) == []

    @pytest.mark.asyncio
    async def test_deleted_job_skipped(self, database, handler_registry):
        @handler("test.deleted")
        async def deleted(params):
            raise AssertionError("must not run")

        store = JobStore()
        job = await store.create("test", "deleted", "* * * * *")
        await store.soft_delete(job.id)

        executor = Executor(store, ExecutionLogStore())
        assert await executor.execute(job.id) is None
        assert await executor.execute(job.id, manual=True) is None
        assert await _records(job.id) == []

    @pytest.mark.asyncio
    async def test_log_append_timeout(self, database, handler_registry):
        """이력 기록이 늦어지면 제한 시간 후 포기 (재시도 없음)"""
        @handler("test.quick")
        async def quick(params):
            return None

        job = await JobStore().create("test", "quick", "* * * * *")

        executor = Executor(JobStore(), SlowLogStore(), log_timeout_seconds=0.05)
        result = await asyncio.wait_for(executor.execute(job.id), timeout=2)

        assert result is None

    @pytest.mark.asyncio
    async def test_store_failure_skips_fire(self, database, handler_registry):
        calls = []

        @handler("test.unreachable")
        async def unreachable(params):
            calls.append(params)

        executor = Executor(BrokenJobStore(), ExecutionLogStore())
        assert await executor.execute(1) is None
        assert calls == []
