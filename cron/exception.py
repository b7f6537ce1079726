"""
크론 평가기 예외 클래스 정의
"""


class CronError(Exception):
    """크론 기본 예외"""
    pass


class InvalidCronError(CronError):
    """크론 표현식 파싱 실패 또는 이후 실행 시점이 존재하지 않음"""
    def __init__(self, cron_expression: str, message: str = None):
        self.cron_expression = cron_expression
        self.message = message or f"Invalid cron expression: {cron_expression}"
        super().__init__(self.message)
