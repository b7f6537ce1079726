"""잡 정의 / 실행 이력 저장소"""

from store.job import JobStore
from store.log import ExecutionLogStore

__all__ = ["JobStore", "ExecutionLogStore"]
