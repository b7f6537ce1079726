"""데이터베이스 공통 인터페이스"""

from abc import ABC, abstractmethod
from typing import Any


class BaseDatabase(ABC):
    """DB 구현체 기본 클래스 (이름으로 레지스트리에 등록됨)"""

    def __init__(self, name: str):
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def transaction(self, readonly: bool = False) -> Any:
        """async 컨텍스트 매니저로 사용할 트랜잭션 반환"""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass
