"""
데이터베이스 관련 예외 클래스 정의

스케줄러/어드민에서 저장소 장애는 모두 DatabaseError 계열로 다룹니다.
"""


class DatabaseError(Exception):
    """데이터베이스 기본 예외"""
    def __init__(self, message: str = None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class ConnectionPoolExhaustedError(DatabaseError):
    """커넥션풀 소진 (타임아웃 내 연결 획득 실패)"""
    pass


class TransactionError(DatabaseError):
    """트랜잭션 시작/커밋/롤백 실패"""
    pass


class QueryExecutionError(DatabaseError):
    """SQL 실행 실패"""
    pass


class ReadOnlyTransactionError(DatabaseError):
    """readonly 트랜잭션에서 쓰기 시도"""
    pass


class DatabaseNotFoundError(DatabaseError):
    """등록되지 않은 DB 이름"""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Database '{name}' is not registered")
