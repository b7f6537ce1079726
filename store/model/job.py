"""
스케줄 잡 정의 모델
"""

from datetime import datetime
from enum import IntEnum

from pydantic import BaseModel, Field


class JobStatus(IntEnum):
    """잡 상태 (0=정상, 1=일시정지)"""
    NORMAL = 0
    PAUSED = 1


class JobDefinition(BaseModel):
    """스케줄 잡 엔티티 (schedule_job)"""
    id: int
    bean_name: str
    method_name: str
    params: str | None = None
    cron_expression: str
    status: JobStatus = JobStatus.NORMAL
    remark: str | None = None
    is_deleted: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def handler_key(self) -> str:
        return f"{self.bean_name}.{self.method_name}"

    @property
    def is_enabled(self) -> bool:
        """스케줄 대상 여부"""
        return self.status == JobStatus.NORMAL and not self.is_deleted

    @classmethod
    def from_row(cls, row) -> "JobDefinition":
        return cls(
            id=row['job_id'],
            bean_name=row['bean_name'],
            method_name=row['method_name'],
            params=row['params'],
            cron_expression=row['cron_expression'],
            status=JobStatus(row['status']),
            remark=row['remark'],
            is_deleted=bool(row['is_deleted']),
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )


class JobFilter(BaseModel):
    """잡 목록 필터 (None은 조건 없음)"""
    job_id: int | None = None
    bean_name: str | None = None
    method_name: str | None = None
    status: JobStatus | None = None


class JobChanges(BaseModel):
    """잡 수정 항목 (None은 기존 값 유지)"""
    bean_name: str | None = Field(default=None, min_length=1)
    method_name: str | None = Field(default=None, min_length=1)
    params: str | None = None
    cron_expression: str | None = None
    remark: str | None = None
