"""
실행 이력 모델
"""

from datetime import datetime
from enum import IntEnum

from pydantic import BaseModel, model_validator


class ExecutionStatus(IntEnum):
    """실행 결과 (0=성공, 1=실패)"""
    SUCCESS = 0
    FAILURE = 1


class ExecutionRecord(BaseModel):
    """
    실행 이력 엔티티 (schedule_job_log)

    id, attempt, created_at은 저장 시 DB에서 채워집니다.
    """
    id: int | None = None
    job_id: int
    bean_name: str
    method_name: str
    params: str | None = None
    status: ExecutionStatus
    error: str | None = None
    attempt: int | None = None
    duration_ms: int = 0
    created_at: datetime | None = None

    @model_validator(mode='after')
    def check_error(self) -> "ExecutionRecord":
        """error는 실패일 때만 존재"""
        if self.status == ExecutionStatus.FAILURE and not self.error:
            raise ValueError("error text is required for a failed execution")
        if self.status == ExecutionStatus.SUCCESS and self.error is not None:
            raise ValueError("error text must be empty for a successful execution")
        return self

    @property
    def handler_key(self) -> str:
        return f"{self.bean_name}.{self.method_name}"

    @classmethod
    def from_row(cls, row) -> "ExecutionRecord":
        return cls(
            id=row['log_id'],
            job_id=row['job_id'],
            bean_name=row['bean_name'],
            method_name=row['method_name'],
            params=row['params'],
            status=ExecutionStatus(row['status']),
            error=row['error'],
            attempt=row['attempt'],
            duration_ms=row['duration_ms'],
            created_at=row['created_at'],
        )


class LogFilter(BaseModel):
    """실행 이력 필터"""
    job_id: int | None = None
    bean_name: str | None = None
    method_name: str | None = None
    status: ExecutionStatus | None = None
