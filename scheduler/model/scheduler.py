"""
스케줄러 설정 및 상태 모델
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from cron import CronExpression


class JobState(str, Enum):
    """스케줄러 내부의 잡 상태"""
    SCHEDULED = "SCHEDULED"  # 타이머 설정됨
    RUNNING = "RUNNING"      # 핸들러 실행 중
    PAUSED = "PAUSED"        # 타이머 해제 (일시정지)
    CANCELLED = "CANCELLED"  # 관리 대상에서 제거 (이력은 유지)


class SchedulerConfig(BaseModel):
    """Scheduler 설정"""
    timezone: str = Field(default="UTC", description="크론 해석 기준 타임존")
    max_sleep_seconds: float = Field(default=60, gt=0, le=3600)
    sync_interval_seconds: float = Field(default=30, gt=0, le=3600)
    retry_interval_seconds: float = Field(default=10, gt=0, le=600)
    log_timeout_seconds: float = Field(default=10, gt=0, le=300)
    shutdown_timeout_seconds: float = Field(default=30, ge=0, le=600)
    max_pending_fires: int = Field(default=10, ge=1, le=1000, description="잡별 대기 발화 상한")
    handler_packages: list[str] = Field(default_factory=lambda: ["worker.job"])

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value


@dataclass
class JobSlot:
    """
    스케줄러가 관리하는 잡 1건의 타이머 상태

    pending에는 실행 중에 도래한 발화가 순서대로 쌓입니다 (값은 수동 실행 여부).
    상한(max_pending_fires)을 넘는 발화는 이미 쌓인 발화에 합쳐집니다.
    """
    job_id: int
    handler_key: str
    cron: CronExpression | None = None
    next_fire: datetime | None = None
    paused: bool = False
    pending: deque[bool] = field(default_factory=deque)
