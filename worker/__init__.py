"""Worker 모듈 - 핸들러 레지스트리와 잡 실행기"""

from worker.base import (
    BaseHandler,
    handler,
    register,
    resolve,
    handler_key,
    get_registered_handlers,
    load_handlers,
)
from worker.exception import HandlerExecutionError, HandlerNotFoundError

__all__ = [
    "BaseHandler",
    "handler",
    "register",
    "resolve",
    "handler_key",
    "get_registered_handlers",
    "load_handlers",
    "HandlerExecutionError",
    "HandlerNotFoundError",
]
