"""
이름 기반 데이터베이스 레지스트리

database.yaml 예시:
    databases:
      default:
        type: sqlite3
        path: ./data/schedjob.db
        pool:
          pool_size: 5
"""

import logging
from typing import Any

from database.base import BaseDatabase
from database.exception import DatabaseNotFoundError

logger = logging.getLogger(__name__)


class DatabaseRegistry:
    """프로세스 전역 DB 인스턴스 관리"""

    _databases: dict[str, BaseDatabase] = {}

    @classmethod
    async def init_from_config(cls, config: dict[str, Any], names: list[str] | None = None) -> None:
        """
        설정에서 DB 초기화

        Args:
            config: databases 키를 포함한 설정 dict
            names: 초기화할 DB 이름 목록 (None이면 전체)
        """
        databases = config.get('databases', {})
        targets = names if names is not None else list(databases.keys())

        for name in targets:
            if name in cls._databases:
                logger.debug(f"Database '{name}' already initialized, skipping")
                continue
            if name not in databases:
                raise DatabaseNotFoundError(name)

            db_config = databases[name]
            db_type = db_config.get('type', 'sqlite3')
            if db_type != 'sqlite3':
                raise ValueError(f"Unsupported database type '{db_type}' for '{name}'")

            from database.sqlite3 import SQLiteDatabase
            cls._databases[name] = await SQLiteDatabase.create(name, db_config)
            logger.info(f"Database registered: {name} ({db_type})")

    @classmethod
    def register(cls, db: BaseDatabase) -> None:
        cls._databases[db.name] = db

    @classmethod
    def get(cls, name: str = 'default') -> BaseDatabase:
        if name not in cls._databases:
            raise DatabaseNotFoundError(name)
        return cls._databases[name]

    @classmethod
    def has(cls, name: str) -> bool:
        return name in cls._databases

    @classmethod
    async def close_all(cls) -> None:
        """등록된 모든 DB 종료"""
        for name, db in list(cls._databases.items()):
            try:
                await db.close()
            except Exception as e:
                logger.error(f"Error closing database '{name}': {e}")
        cls._databases.clear()

    @classmethod
    def clear(cls) -> None:
        """레지스트리 초기화 (테스트용, 연결은 닫지 않음)"""
        cls._databases.clear()


def get_db(name: str = 'default') -> BaseDatabase:
    """등록된 DB 인스턴스 반환"""
    return DatabaseRegistry.get(name)
