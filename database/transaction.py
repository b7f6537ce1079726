"""
트랜잭션 데코레이터

사용 예시:
    @transactional
    async def create_job(...):
        ctx = get_connection()
        await ctx.execute(...)

    @transactional_readonly(db)
    async def read_jobs(...):
        ...

이미 같은 DB의 트랜잭션이 열려 있으면 새로 열지 않고 참여합니다.
"""

import functools
import logging
import sqlite3

from database.base import BaseDatabase
from database.context import find_connection
from database.exception import DatabaseError, QueryExecutionError
from database.registry import get_db

logger = logging.getLogger(__name__)


def _wrap(func, target, readonly: bool):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        db = target if isinstance(target, BaseDatabase) else get_db(target or 'default')

        if find_connection(db.name) is not None:
            return await func(*args, **kwargs)

        try:
            async with db.transaction(readonly=readonly):
                return await func(*args, **kwargs)
        except DatabaseError:
            raise
        except sqlite3.Error as e:
            logger.error(f"Query failed in {func.__qualname__}: {e}")
            raise QueryExecutionError(str(e)) from e

    return wrapper


def transactional(arg=None):
    """
    쓰기 트랜잭션 데코레이터

    @transactional, @transactional(db), @transactional('name') 모두 지원
    """
    if callable(arg) and not isinstance(arg, BaseDatabase):
        return _wrap(arg, None, readonly=False)

    def decorator(func):
        return _wrap(func, arg, readonly=False)
    return decorator


def transactional_readonly(arg=None):
    """읽기 전용 트랜잭션 데코레이터"""
    if callable(arg) and not isinstance(arg, BaseDatabase):
        return _wrap(arg, None, readonly=True)

    def decorator(func):
        return _wrap(func, arg, readonly=True)
    return decorator
