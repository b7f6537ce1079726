"""
SQLite3 비동기 데이터베이스 패키지

사용 예시:
    from database.registry import DatabaseRegistry

    await DatabaseRegistry.init_from_config(config)
    db = DatabaseRegistry.get('default')

    async with db.transaction() as ctx:
        await ctx.execute("INSERT INTO ...")
"""

from database.sqlite3.connection import (
    SQLiteDatabase,
    AsyncConnectionPool,
    TransactionContext,
    ManagedTransaction,
    PoolConfig,
    SqliteOptions,
    PooledConnection,
)

__all__ = [
    'SQLiteDatabase',
    'AsyncConnectionPool',
    'TransactionContext',
    'ManagedTransaction',
    'PoolConfig',
    'SqliteOptions',
    'PooledConnection',
]
