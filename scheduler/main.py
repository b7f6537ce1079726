"""
Scheduler: 크론 기반 잡 스케줄러

활성화된 잡마다 다음 실행 시점(타이머)을 메모리에 유지하고, 시점이 도래한
잡을 독립 태스크로 실행합니다. 실행 결과는 Executor가 실행 이력으로 기록합니다.

- 발화 시 핸들러 호출 전에 다음 실행 시점을 먼저 계산 (느린 실행이 주기를 밀지 않음)
- 같은 잡은 동시에 두 번 실행되지 않음 (실행 중 도래한 발화는 큐에 쌓였다가 순서대로 실행)
  (큐 길이는 max_pending_fires로 제한, 넘치는 발화는 이미 쌓인 발화에 합쳐짐)
- 서로 다른 잡은 독립적으로 병렬 실행
- 재시작/재개 시 놓친 발화는 재실행하지 않고 "현재" 기준으로 다시 계산

실행 방법:
    python main.py scheduler
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

from cron import InvalidCronError, parse
from database import DatabaseError
from scheduler.model.scheduler import JobSlot, JobState, SchedulerConfig
from store import ExecutionLogStore, JobStore
from store.model import JobDefinition, JobStatus
from worker.executor import Executor

logger = logging.getLogger(__name__)


class Scheduler:
    """
    잡 스케줄러

    타이머 목록(_slots)은 이 객체만 소유하며, 변경은 모두 이벤트 루프 스레드에서
    await 없이 이루어지므로 schedule/pause/cancel 사이에 경합이 없습니다.
    await가 끼는 sync()는 잡별 revision으로 그 사이 발생한 변경을 덮어쓰지 않습니다.
    """

    def __init__(
        self,
        config: SchedulerConfig,
        job_store: JobStore | None = None,
        log_store: ExecutionLogStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            config: Scheduler 설정
            job_store: 잡 정의 저장소
            log_store: 실행 이력 저장소
            clock: 현재 시각 함수 (미지정 시 config.timezone 기준 현재 시각)
        """
        self._config = config
        self._tz = ZoneInfo(config.timezone)
        self._clock = clock or (lambda: datetime.now(self._tz))

        self._job_store = job_store or JobStore()
        self._executor = Executor(
            self._job_store,
            log_store or ExecutionLogStore(),
            log_timeout_seconds=config.log_timeout_seconds,
        )

        self._slots: dict[int, JobSlot] = {}
        self._cancelled: set[int] = set()
        self._revision = 0
        self._revisions: dict[int, int] = {}

        self._running = False
        self._closing = False
        self._stop_event = asyncio.Event()
        self._wakeup = asyncio.Event()
        self._running_tasks: set[asyncio.Task] = set()
        # 실행 중 여부는 슬롯이 아닌 잡 ID 기준 (슬롯이 제거 후 다시 만들어져도 유지)
        self._running_ids: set[int] = set()

        self._needs_sync = True
        self._next_sync_at = 0.0

    # ============================================
    # 생명주기
    # ============================================

    async def start(self) -> None:
        """스케줄러 메인 루프 시작 (stop() 호출 전까지 반환하지 않음)"""
        if self._running:
            logger.warning("Scheduler is already running")
            return

        self._running = True
        self._closing = False
        self._needs_sync = True
        self._stop_event.clear()

        logger.info(
            f"Scheduler started (timezone={self._config.timezone}, "
            f"sync_interval={self._config.sync_interval_seconds}s, "
            f"max_sleep={self._config.max_sleep_seconds}s)"
        )

        try:
            await self._main_loop()
        except asyncio.CancelledError:
            logger.info("Scheduler cancelled")
        except Exception as e:
            logger.error(f"Scheduler error: {e}", exc_info=True)
            raise
        finally:
            self._closing = True
            await self._wait_running_tasks()
            self._running = False
            logger.info("Scheduler stopped")

    async def stop(self) -> None:
        """Scheduler graceful shutdown"""
        if not self._running:
            return

        logger.info("Stopping scheduler...")
        self._running = False
        self._stop_event.set()
        self._wakeup.set()

    async def _main_loop(self) -> None:
        """메인 루프: 저장소 동기화 및 도래한 잡 발화"""
        loop = asyncio.get_running_loop()

        while self._running:
            if self._needs_sync or loop.time() >= self._next_sync_at:
                try:
                    await self.sync()
                except DatabaseError as e:
                    logger.error(
                        f"Database error while syncing jobs: {e}. "
                        f"Retrying in {self._config.retry_interval_seconds}s"
                    )
                    self._needs_sync = True
                    self._next_sync_at = loop.time() + self._config.retry_interval_seconds
                except Exception as e:
                    logger.error(f"Unexpected error while syncing jobs: {e}", exc_info=True)
                    self._next_sync_at = loop.time() + self._config.retry_interval_seconds

            try:
                self.tick()
            except Exception as e:
                logger.error(f"Unexpected error in tick: {e}", exc_info=True)

            await self._sleep(self._seconds_until_wakeup(loop.time()))

    async def _sleep(self, seconds: float) -> None:
        """인터럽트 가능한 sleep (타이머 변경/stop 시 즉시 깨어남)"""
        if seconds > 0 and not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                pass
        self._wakeup.clear()

    def _seconds_until_wakeup(self, loop_now: float) -> float:
        """가장 빠른 발화 시점 / 다음 동기화 시점까지 대기 시간"""
        delay = float(self._config.max_sleep_seconds)

        fire_times = [slot.next_fire for slot in self._slots.values() if slot.next_fire is not None]
        if fire_times:
            delay = min(delay, (min(fire_times) - self._clock()).total_seconds())

        delay = min(delay, self._next_sync_at - loop_now)
        return max(delay, 0.0)

    async def _wait_running_tasks(self) -> None:
        """실행 중인 태스크 완료 대기 (graceful shutdown)"""
        if not self._running_tasks:
            return

        logger.info(f"Waiting for {len(self._running_tasks)} running jobs...")

        try:
            await asyncio.wait_for(
                asyncio.gather(*self._running_tasks, return_exceptions=True),
                timeout=self._config.shutdown_timeout_seconds,
            )
            logger.info("All running jobs completed")
        except asyncio.TimeoutError:
            logger.warning(
                f"Shutdown timeout ({self._config.shutdown_timeout_seconds}s), "
                f"{len(self._running_tasks)} jobs still running"
            )
            for task in self._running_tasks:
                task.cancel()

    # ============================================
    # 타이머 관리 (Admin에서 호출)
    # ============================================

    def schedule(self, job: JobDefinition) -> datetime | None:
        """
        잡 상태에 맞게 타이머 설정

        - 정상 상태: 기존 타이머를 버리고 현재 시각 기준으로 다시 설정
        - 일시정지: 타이머 해제
        - 삭제됨: 관리 대상에서 제거

        Returns:
            다음 실행 시점 (타이머가 설정되지 않으면 None)

        Raises:
            InvalidCronError: 크론 표현식 오류
        """
        self._touch(job.id)

        if job.is_deleted:
            self._drop(job.id)
            return None

        if job.status != JobStatus.NORMAL:
            self._pause_slot(job.id, job.handler_key)
            return None

        return self._arm(job)

    def pause(self, job_id: int) -> None:
        """타이머 해제 (실행 중인 호출은 끝까지 실행됨)"""
        self._touch(job_id)
        self._pause_slot(job_id)

    def cancel(self, job_id: int) -> None:
        """관리 대상에서 제거 (실행 중인 호출은 끝까지 실행됨)"""
        self._touch(job_id)
        self._drop(job_id)

    def trigger(self, job: JobDefinition) -> bool:
        """
        잡 1회 즉시 실행 (정상 상태 잡만 가능)

        Returns:
            바로 시작했으면 True, 실행 중이라 대기열에 넣었거나 거부했으면 False
        """
        if job.is_deleted:
            logger.warning(f"Refusing to trigger deleted job: job_id={job.id}")
            return False
        if job.status != JobStatus.NORMAL:
            logger.warning(f"Refusing to trigger paused job: job_id={job.id}")
            return False

        slot = self._slots.get(job.id)
        if slot is None:
            self.schedule(job)
            slot = self._slots[job.id]

        logger.info(f"Manual trigger: job_id={job.id}, handler={job.handler_key}")
        return self._dispatch(slot, manual=True)

    def _arm(self, job: JobDefinition, now: datetime | None = None) -> datetime:
        cron = parse(job.cron_expression)
        next_fire = cron.next_fire(now or self._clock())

        slot = self._slots.get(job.id) or self._new_slot(job.id, job.handler_key)
        slot.handler_key = job.handler_key
        slot.cron = cron
        slot.paused = False
        slot.next_fire = next_fire

        self._wakeup.set()
        logger.info(
            f"Job scheduled: job_id={job.id}, handler={job.handler_key}, "
            f"cron='{cron.expression}', next_fire={next_fire.isoformat()}"
        )
        return next_fire

    def _new_slot(self, job_id: int, handler_key: str) -> JobSlot:
        slot = JobSlot(job_id=job_id, handler_key=handler_key)
        self._slots[job_id] = slot
        self._cancelled.discard(job_id)
        return slot

    def _pause_slot(self, job_id: int, handler_key: str = "") -> None:
        slot = self._slots.get(job_id) or self._new_slot(job_id, handler_key)
        slot.paused = True
        slot.next_fire = None
        if slot.pending:
            logger.info(f"Dropping {len(slot.pending)} deferred fires of paused job: job_id={job_id}")
            slot.pending.clear()
        logger.info(f"Job paused: job_id={job_id}")

    def _drop(self, job_id: int) -> None:
        slot = self._slots.pop(job_id, None)
        if slot is not None:
            slot.pending.clear()
            logger.info(f"Job cancelled: job_id={job_id}")
        self._cancelled.add(job_id)

    def _touch(self, job_id: int) -> None:
        self._revision += 1
        self._revisions[job_id] = self._revision

    # ============================================
    # 발화
    # ============================================

    def tick(self, now: datetime | None = None) -> list[int]:
        """
        도래한 잡 발화

        Returns:
            발화한 잡 ID 목록 (대기열로 미뤄진 잡 포함)
        """
        now = now or self._clock()
        fired = []

        for slot in list(self._slots.values()):
            if slot.next_fire is None or slot.next_fire > now:
                continue

            # 핸들러 호출 전에 다음 타이머부터 설정
            try:
                slot.next_fire = slot.cron.next_fire(now)
            except InvalidCronError as e:
                logger.error(f"Cannot compute next fire, job left unarmed: job_id={slot.job_id}, error={e}")
                slot.next_fire = None

            self._dispatch(slot, manual=False)
            fired.append(slot.job_id)

        return fired

    def _dispatch(self, slot: JobSlot, manual: bool) -> bool:
        """실행 시작, 이미 실행 중이면 대기열에 추가"""
        if slot.job_id in self._running_ids:
            if len(slot.pending) >= self._config.max_pending_fires:
                logger.warning(
                    f"Deferred fire limit reached, fire merged: job_id={slot.job_id}, "
                    f"deferred={len(slot.pending)}"
                )
                return False

            slot.pending.append(manual)
            logger.info(
                f"Job still running, fire deferred: job_id={slot.job_id}, "
                f"deferred={len(slot.pending)}"
            )
            return False

        self._start(slot.job_id, manual)
        return True

    def _start(self, job_id: int, manual: bool) -> None:
        self._running_ids.add(job_id)
        task = asyncio.create_task(self._run(job_id, manual), name=f"job-{job_id}")
        self._running_tasks.add(task)
        task.add_done_callback(self._on_task_done)

    async def _run(self, job_id: int, manual: bool) -> None:
        """잡 실행 (워커 태스크)"""
        try:
            await self._executor.execute(job_id, manual=manual)
        except Exception as e:
            logger.error(f"Unexpected error executing job {job_id}: {e}", exc_info=True)
        finally:
            self._running_ids.discard(job_id)
            # 실행 중에 슬롯이 다시 만들어졌을 수 있으므로 현재 슬롯의 대기열을 봄
            slot = self._slots.get(job_id)
            if slot is not None and slot.pending and not self._closing:
                self._start(job_id, slot.pending.popleft())

    def _on_task_done(self, task: asyncio.Task) -> None:
        """태스크 완료 콜백"""
        self._running_tasks.discard(task)
        if not task.cancelled() and task.exception():
            logger.error(f"Task exception: {task.exception()}")

    async def drain(self) -> None:
        """실행 중/대기 중인 발화가 모두 끝날 때까지 대기"""
        while self._running_tasks:
            await asyncio.gather(*list(self._running_tasks), return_exceptions=True)

    # ============================================
    # 저장소 동기화
    # ============================================

    async def sync(self) -> None:
        """
        저장소의 활성 잡 목록과 타이머 목록을 맞춤

        다른 프로세스(예: Admin 단독 실행)에서 변경된 잡도 반영됩니다.
        조회 중에 schedule/pause/cancel된 잡은 건드리지 않습니다.

        Raises:
            DatabaseError: 저장소 조회 실패
        """
        started = self._revision
        jobs = await self._job_store.list_enabled()

        self._needs_sync = False
        self._next_sync_at = asyncio.get_running_loop().time() + self._config.sync_interval_seconds

        enabled_ids = set()
        for job in jobs:
            enabled_ids.add(job.id)
            if self._revisions.get(job.id, 0) > started:
                continue

            slot = self._slots.get(job.id)
            if slot is not None and not slot.paused and slot.cron is not None and slot.next_fire is not None:
                if slot.cron.expression == ' '.join(job.cron_expression.split()):
                    continue

            try:
                self._arm(job)
            except InvalidCronError as e:
                logger.error(f"Invalid cron expression in store, job not scheduled: job_id={job.id}, error={e}")

        for job_id, slot in list(self._slots.items()):
            if job_id in enabled_ids or slot.paused:
                continue
            if self._revisions.get(job_id, 0) > started:
                continue
            self._drop(job_id)

        logger.debug(f"Synced {len(jobs)} enabled jobs, {len(self._slots)} tracked")

    # ============================================
    # 조회
    # ============================================

    def state(self, job_id: int) -> JobState | None:
        """스케줄러 기준 잡 상태 (관리한 적 없는 잡은 None)"""
        slot = self._slots.get(job_id)
        if slot is None:
            return JobState.CANCELLED if job_id in self._cancelled else None
        if job_id in self._running_ids:
            return JobState.RUNNING
        if slot.paused or slot.next_fire is None:
            return JobState.PAUSED
        return JobState.SCHEDULED

    def next_fire_time(self, job_id: int) -> datetime | None:
        slot = self._slots.get(job_id)
        return slot.next_fire if slot else None

    def pending_count(self, job_id: int) -> int:
        """실행 대기열에 쌓인 발화 수"""
        slot = self._slots.get(job_id)
        return len(slot.pending) if slot else 0

    @property
    def now(self) -> datetime:
        return self._clock()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def running_count(self) -> int:
        """실행 중인 태스크 수"""
        return len(self._running_tasks)
