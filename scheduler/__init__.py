"""Scheduler 모듈 - 크론 타이머 관리 및 잡 발화"""

from scheduler.main import Scheduler
from scheduler.model.scheduler import JobState, SchedulerConfig

__all__ = ["Scheduler", "JobState", "SchedulerConfig"]
