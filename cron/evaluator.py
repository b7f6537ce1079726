"""
크론 표현식 평가기

croniter 위에서 동작하는 순수 함수 모음입니다. 상태를 갖지 않으므로
여러 태스크에서 동시에 호출해도 안전합니다.

지원 형식:
    5필드: 분 시 일 월 요일              (예: "*/5 * * * *")
    6필드: 초 분 시 일 월 요일 (Quartz 순서) (예: "0 0/10 * * * ?")

와일드카드(*), 목록(1,2), 범위(1-5), 간격(*/5) 문법을 지원하며
일/요일 필드의 "?"는 "*"로 취급합니다.
"""

from collections.abc import Iterator
from datetime import datetime

from croniter import croniter

from cron.exception import InvalidCronError

DAY_FIELDS_5 = (2, 4)


class CronExpression:
    """파싱된 크론 표현식"""

    def __init__(self, expression: str):
        self._expression = ' '.join(expression.split())
        self._croniter_expr, self._has_seconds = _normalize(self._expression)

        try:
            croniter(self._croniter_expr)
        except (KeyError, ValueError) as e:
            raise InvalidCronError(expression, f"Invalid cron expression: {expression}. Error: {e}")

    @property
    def expression(self) -> str:
        return self._expression

    @property
    def has_seconds(self) -> bool:
        return self._has_seconds

    def next_fire(self, after: datetime) -> datetime:
        """
        after 이후(after 미포함) 가장 빠른 실행 시점

        Raises:
            InvalidCronError: 이후 실행 시점을 찾을 수 없는 경우 (예: 2월 30일)
        """
        return next(iter(self.fire_times(after)))

    def fire_times(self, after: datetime) -> "FireTimes":
        """after 이후 실행 시점의 지연 시퀀스"""
        return FireTimes(self, after)

    def _iterate(self, after: datetime) -> Iterator[datetime]:
        try:
            it = croniter(self._croniter_expr, after)
            while True:
                fire_time = it.get_next(datetime)
                # croniter는 마이크로초가 있는 기준 시각에서 같은 초를 돌려줄 수 있음
                if fire_time > after:
                    yield fire_time
        except (KeyError, ValueError) as e:
            raise InvalidCronError(
                self._expression,
                f"No fire time for cron expression '{self._expression}' after {after.isoformat()}: {e}"
            )

    def __eq__(self, other) -> bool:
        return isinstance(other, CronExpression) and other._croniter_expr == self._croniter_expr

    def __hash__(self) -> int:
        return hash(self._croniter_expr)

    def __repr__(self) -> str:
        return f"CronExpression({self._expression!r})"


class FireTimes:
    """
    실행 시점 시퀀스

    iter()를 호출할 때마다 시작 시각부터 다시 계산하므로 몇 번이고
    재시작할 수 있습니다.
    """

    def __init__(self, expression: CronExpression, after: datetime):
        self._expression = expression
        self._after = after

    def __iter__(self) -> Iterator[datetime]:
        return self._expression._iterate(self._after)

    def take(self, count: int) -> list[datetime]:
        """앞에서부터 count개 반환"""
        result = []
        for fire_time in self:
            if len(result) >= count:
                break
            result.append(fire_time)
        return result


def _normalize(expression: str) -> tuple[str, bool]:
    """
    croniter 입력 형식으로 변환

    Returns:
        (croniter용 표현식, 초 필드 포함 여부)
    """
    fields = expression.split(' ') if expression else []

    if len(fields) == 5:
        day_fields = DAY_FIELDS_5
        has_seconds = False
    elif len(fields) == 6:
        # Quartz 순서(초가 맨 앞) -> croniter 순서(초가 맨 뒤)
        fields = fields[1:] + fields[:1]
        day_fields = DAY_FIELDS_5
        has_seconds = True
    else:
        raise InvalidCronError(
            expression,
            f"Invalid cron expression: {expression!r}. Expected 5 or 6 fields, got {len(fields)}"
        )

    for index in day_fields:
        if fields[index] == '?':
            fields[index] = '*'

    return ' '.join(fields), has_seconds


def parse(expression: str) -> CronExpression:
    """
    크론 표현식 파싱

    Raises:
        InvalidCronError: 문법 오류
    """
    if not isinstance(expression, str) or not expression.strip():
        raise InvalidCronError(str(expression), "Cron expression must not be empty")
    return CronExpression(expression)


def next_fire(expression: str, after: datetime) -> datetime:
    """expression의 after 이후(미포함) 첫 실행 시점"""
    return parse(expression).next_fire(after)


def validate(expression: str, now: datetime | None = None) -> CronExpression:
    """
    등록/수정 시점 검증: 문법이 맞고 now 이후 실행 시점이 최소 하나 존재해야 함

    Raises:
        InvalidCronError: 검증 실패
    """
    cron = parse(expression)
    cron.next_fire(now or datetime.now().astimezone())
    return cron
