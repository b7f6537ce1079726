"""스케줄 잡 관련 모델 정의"""

import json
from datetime import datetime
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _blank_to_none(value: Any) -> Any:
    """빈 문자열은 미입력으로 취급, dict/list 파라미터는 JSON 문자열로 저장"""
    if isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]

BEAN_NAME = AliasChoices("handlerBeanName", "beanName", "bean_name")
METHOD_NAME = AliasChoices("handlerMethodName", "methodName", "method_name")
CRON_EXPRESSION = AliasChoices("cronExpression", "cron_expression")


class JobCreateRequest(BaseModel):
    """잡 생성 요청"""
    bean_name: str = Field(..., min_length=1, max_length=200, validation_alias=BEAN_NAME)
    method_name: str = Field(..., min_length=1, max_length=100, validation_alias=METHOD_NAME)
    params: OptionalText = Field(default=None, max_length=2000)
    cron_expression: str = Field(..., min_length=1, max_length=100, validation_alias=CRON_EXPRESSION)
    remark: OptionalText = Field(default=None, max_length=255)


class JobUpdateRequest(BaseModel):
    """잡 수정 요청 (None 항목은 기존 값 유지)"""
    job_id: int | None = Field(default=None, validation_alias=AliasChoices("jobId", "job_id"))
    bean_name: OptionalText = Field(default=None, max_length=200, validation_alias=BEAN_NAME)
    method_name: OptionalText = Field(default=None, max_length=100, validation_alias=METHOD_NAME)
    params: OptionalText = Field(default=None, max_length=2000)
    cron_expression: OptionalText = Field(default=None, max_length=100, validation_alias=CRON_EXPRESSION)
    remark: OptionalText = Field(default=None, max_length=255)


class JobResponse(BaseModel):
    """잡 응답 모델 (camelCase 직렬화)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: int
    bean_name: str
    method_name: str
    params: str | None = None
    cron_expression: str
    status: int
    remark: str | None = None
    created_at: datetime | None = None
    next_fire_time: datetime | None = None
    state: str | None = None
