"""실행 이력 관련 모델 정의"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class LogResponse(BaseModel):
    """실행 이력 응답 모델"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    log_id: int
    job_id: int
    bean_name: str | None = None
    method_name: str | None = None
    params: str | None = None
    status: int
    error: str | None = None
    attempt: int
    duration_ms: int = 0
    created_at: datetime | None = None
