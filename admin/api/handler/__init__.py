"""Admin API 핸들러 패키지"""

from admin.api.handler.job import JobHandler
from admin.api.handler.log import LogHandler

__all__ = ['JobHandler', 'LogHandler']
