"""
비동기 데이터베이스 패키지

사용 예시:
    from database import transactional, get_connection
    from database.registry import DatabaseRegistry

    await DatabaseRegistry.init_from_config(config)

    @transactional
    async def pause_job(job_id):
        ctx = get_connection()
        await ctx.execute("UPDATE ...")
"""

from database.context import get_connection
from database.exception import (
    DatabaseError,
    ConnectionPoolExhaustedError,
    TransactionError,
    QueryExecutionError,
    ReadOnlyTransactionError,
    DatabaseNotFoundError,
)
from database.registry import get_db
from database.transaction import transactional, transactional_readonly

__all__ = [
    'transactional',
    'transactional_readonly',
    'get_connection',
    'get_db',
    'DatabaseError',
    'ConnectionPoolExhaustedError',
    'TransactionError',
    'QueryExecutionError',
    'ReadOnlyTransactionError',
    'DatabaseNotFoundError',
]
