"""
Admin 관련 예외 클래스 정의
"""


class AdminError(Exception):
    """Admin 기본 예외"""
    pass


class JobNotFoundError(AdminError):
    """잡을 찾을 수 없음 (소프트 삭제된 잡 포함)"""
    def __init__(self, job_id: int):
        self.job_id = job_id
        self.message = f"Job with id {job_id} not found"
        super().__init__(self.message)


class JobStatusError(AdminError):
    """현재 상태에서 허용되지 않는 작업 (중복 일시정지/재개, 일시정지된 잡 실행)"""
    def __init__(self, job_id: int, current_status: str, action: str):
        self.job_id = job_id
        self.current_status = current_status
        self.action = action
        self.message = f"Cannot {action} job {job_id}: job is {current_status}"
        super().__init__(self.message)


class JobValidationError(AdminError):
    """요청 유효성 검사 실패"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class SchedulerUnavailableError(AdminError):
    """이 프로세스에서 스케줄러가 실행 중이 아님 (Admin 단독 실행)"""
    def __init__(self, action: str):
        self.action = action
        self.message = f"Cannot {action}: scheduler is not running in this process"
        super().__init__(self.message)
