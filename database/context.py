"""
현재 태스크에 바인딩된 트랜잭션 컨텍스트 관리

contextvars를 사용하므로 asyncio 태스크마다 독립적으로 관리됩니다.
"""

from contextvars import ContextVar
from typing import Any

_connections: ContextVar[dict[str, Any] | None] = ContextVar('db_connections', default=None)


def set_connection(name: str, ctx: Any) -> None:
    """DB 이름에 트랜잭션 컨텍스트 바인딩"""
    current = dict(_connections.get() or {})
    current[name] = ctx
    _connections.set(current)


def clear_connection(name: str) -> None:
    """바인딩 해제"""
    current = dict(_connections.get() or {})
    current.pop(name, None)
    _connections.set(current)


def find_connection(name: str = 'default') -> Any | None:
    """바인딩된 컨텍스트 조회 (없으면 None)"""
    return (_connections.get() or {}).get(name)


def get_connection(name: str = 'default') -> Any:
    """
    현재 트랜잭션 컨텍스트 반환

    Raises:
        RuntimeError: @transactional 밖에서 호출된 경우
    """
    ctx = find_connection(name)
    if ctx is None:
        raise RuntimeError(
            f"No active transaction for database '{name}'. "
            f"Use @transactional or db.transaction()."
        )
    return ctx
