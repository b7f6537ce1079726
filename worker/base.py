"""
핸들러 레지스트리

핸들러 키는 "<bean>.<method>" 두 부분으로 구성되며, 프로세스 시작 시
@handler 데코레이터나 register()로 등록합니다. 등록 이후에는 읽기만 합니다.

사용 예시:
    @handler("order.autoCancel")
    class AutoCancelHandler(BaseHandler):
        async def execute(self, params: str | None):
            ...

    register("report.daily", build_daily_report)
"""

import importlib
import logging
import pkgutil
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from worker.exception import InvalidHandlerKeyError

__all__ = [
    'handler',
    'register',
    'resolve',
    'handler_key',
    'split_handler_key',
    'get_registered_handlers',
    'load_handlers',
    'BaseHandler',
]

logger = logging.getLogger(__name__)

# 핸들러 레지스트리 (모듈 레벨)
_registry: dict[str, Any] = {}


class BaseHandler(ABC):
    """배치 핸들러 기본 클래스 (실행마다 새 인스턴스 생성)"""

    @abstractmethod
    async def execute(self, params: str | None) -> Any:
        """
        잡 실행 로직

        Args:
            params: 잡 정의에 저장된 파라미터 문자열 (가공 없이 전달)

        Raises:
            Exception: 실행 실패 시 예외 발생 (실패 이력으로 기록됨)
        """
        pass


def handler_key(bean_name: str, method_name: str) -> str:
    """(bean, method) -> "bean.method" """
    return f"{bean_name}.{method_name}"


def split_handler_key(key: str) -> tuple[str, str]:
    """"bean.method" -> (bean, method)"""
    bean_name, sep, method_name = key.rpartition('.')
    if not sep or not bean_name or not method_name:
        raise InvalidHandlerKeyError(key)
    return bean_name, method_name


def register(key: str, target: Callable | type[BaseHandler]) -> None:
    """핸들러 등록 (BaseHandler 서브클래스 또는 params 하나를 받는 callable)"""
    split_handler_key(key)
    if not callable(target):
        raise TypeError(f"Handler for '{key}' must be callable, got {type(target).__name__}")

    existing = _registry.get(key)
    if existing is not None and existing is not target:
        logger.warning(f"Handler '{key}' re-registered: {existing!r} -> {target!r}")
    _registry[key] = target


def handler(key: str):
    """핸들러 등록 데코레이터 (클래스/함수 모두 가능)"""
    def decorator(target):
        register(key, target)
        return target
    return decorator


def resolve(key: str) -> Callable | None:
    """
    키에 해당하는 실행 callable 반환

    Returns:
        params 하나를 받는 callable, 등록되지 않았으면 None
    """
    target = _registry.get(key)
    if target is None:
        return None
    if isinstance(target, type) and issubclass(target, BaseHandler):
        return target().execute
    return target


def get_registered_handlers() -> dict[str, Any]:
    """등록된 핸들러 목록 반환"""
    return _registry.copy()


def load_handlers(package_name: str = 'worker.job') -> list[str]:
    """
    핸들러 모듈 로드 (데코레이터 등록을 위해, 하위 패키지 재귀 탐색)

    Returns:
        로드된 모듈 이름 목록
    """
    loaded = []

    def load_recursive(package, prefix: str):
        for _, module_name, is_pkg in pkgutil.iter_modules(package.__path__):
            full_name = f"{prefix}.{module_name}"
            module = importlib.import_module(full_name)
            loaded.append(full_name)
            logger.debug(f"Loaded handler module: {full_name}")
            if is_pkg:
                load_recursive(module, full_name)

    load_recursive(importlib.import_module(package_name), package_name)
    return loaded
