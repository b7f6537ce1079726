"""실행 이력 조회 핸들러"""

from admin.api.model.log import LogResponse
from store import ExecutionLogStore
from store.model import ExecutionRecord, LogFilter


class LogHandler:
    """실행 이력 핸들러 (조회 전용)"""

    def __init__(self, store: ExecutionLogStore | None = None):
        self._store = store or ExecutionLogStore()

    async def list_logs(
        self,
        log_filter: LogFilter | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[LogResponse], int]:
        """실행 이력 페이징 조회 (최신순, 삭제된 잡의 이력 포함)"""
        records, total = await self._store.list_records(log_filter, page=page, limit=limit)
        return [_to_response(record) for record in records], total


def _to_response(record: ExecutionRecord) -> LogResponse:
    return LogResponse(
        log_id=record.id,
        job_id=record.job_id,
        bean_name=record.bean_name,
        method_name=record.method_name,
        params=record.params,
        status=int(record.status),
        error=record.error,
        attempt=record.attempt,
        duration_ms=record.duration_ms,
        created_at=record.created_at,
    )
