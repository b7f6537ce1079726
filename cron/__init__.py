"""크론 표현식 평가 모듈"""

from cron.evaluator import CronExpression, FireTimes, parse, next_fire, validate
from cron.exception import CronError, InvalidCronError

__all__ = [
    "CronExpression",
    "FireTimes",
    "parse",
    "next_fire",
    "validate",
    "CronError",
    "InvalidCronError",
]
