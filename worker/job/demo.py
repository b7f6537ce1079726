"""데모 핸들러 - 스케줄 동작 확인용"""

import logging

from worker.base import BaseHandler, handler

logger = logging.getLogger(__name__)


@handler("demo.ping")
class PingHandler(BaseHandler):
    """실행될 때마다 로그만 남기는 핸들러"""

    async def execute(self, params: str | None) -> str:
        logger.info(f"PingHandler executed with params: {params}")
        return "pong"


@handler("demo.echo")
def echo(params: str | None) -> str | None:
    """동기 함수 핸들러 예시 (워커 스레드에서 실행됨)"""
    logger.info(f"echo: {params}")
    return params
