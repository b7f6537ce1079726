"""
Worker 관련 예외 클래스 정의
"""


class WorkerError(Exception):
    """Worker 기본 예외"""
    pass


class HandlerNotFoundError(WorkerError):
    """핸들러를 찾을 수 없음 (실행 시점에 키가 등록되어 있지 않음)"""
    def __init__(self, name: str):
        self.name = name
        self.message = f"Handler not found: {name}"
        super().__init__(self.message)


class HandlerExecutionError(WorkerError):
    """핸들러 실행 중 예외 발생"""
    def __init__(self, name: str, cause: BaseException):
        self.name = name
        self.cause = cause
        self.message = f"{type(cause).__name__}: {cause}"
        super().__init__(self.message)


class InvalidHandlerKeyError(WorkerError):
    """핸들러 키 형식 오류 ("bean.method" 형식이어야 함)"""
    def __init__(self, key: str):
        self.key = key
        self.message = f"Invalid handler key '{key}'. Expected '<bean>.<method>'"
        super().__init__(self.message)
