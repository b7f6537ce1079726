"""Admin API 모델 패키지"""

from admin.api.model.common import PageResponse
from admin.api.model.job import JobCreateRequest, JobUpdateRequest, JobResponse
from admin.api.model.log import LogResponse

__all__ = [
    'PageResponse',
    'JobCreateRequest',
    'JobUpdateRequest',
    'JobResponse',
    'LogResponse',
]
