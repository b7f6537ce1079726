"""저장소 모델"""

from store.model.job import JobChanges, JobDefinition, JobFilter, JobStatus
from store.model.log import ExecutionRecord, ExecutionStatus, LogFilter

__all__ = [
    "JobChanges",
    "JobDefinition",
    "JobFilter",
    "JobStatus",
    "ExecutionRecord",
    "ExecutionStatus",
    "LogFilter",
]
