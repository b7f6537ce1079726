"""
공통 테스트 fixture

각 테스트는 tmp_path 아래의 새 SQLite 파일을 'default' DB로 사용합니다.
"""

import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# 프로젝트 루트 경로 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from database import get_db
from database.registry import DatabaseRegistry
from worker.base import _registry, load_handlers

# 테스트용 로깅 설정
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# 데모 핸들러는 항상 등록된 상태에서 시작 (모듈 캐시 때문에 재등록되지 않음)
load_handlers("worker.job")


class FakeClock:
    """테스트용 시계 (advance로만 움직임)"""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def db_config(tmp_path):
    """테스트용 database 설정 (tmp_path의 새 DB 파일)"""
    return {
        'databases': {
            'default': {
                'type': 'sqlite3',
                'path': str(tmp_path / 'schedjob_test.db'),
                'pool': {'pool_size': 3, 'pool_timeout': 5},
            }
        }
    }


@pytest_asyncio.fixture
async def database(db_config):
    """테스트용 Database 인스턴스 (DatabaseRegistry 사용)"""
    DatabaseRegistry.clear()

    await DatabaseRegistry.init_from_config(db_config, ['default'])

    yield get_db('default')
    await DatabaseRegistry.close_all()


@pytest.fixture
def handler_registry():
    """테스트 중 등록한 핸들러를 테스트 후 원래대로 복원"""
    saved = dict(_registry)
    yield _registry
    _registry.clear()
    _registry.update(saved)


@pytest.fixture
def clock():
    """2024-01-01 10:00:30 UTC에서 시작하는 시계"""
    return FakeClock(datetime(2024, 1, 1, 10, 0, 30, tzinfo=timezone.utc))
