"""
Admin API 테스트

테스트 항목:
1. 잡 생성/조회/수정/삭제 (camelCase 요청/응답)
2. 잘못된 크론 표현식 시 400 에러
3. 중복 일시정지/재개 시 400 에러
4. 존재하지 않는 잡 404 에러
5. 잡 목록 페이징/필터
6. 수동 실행 후 실행 이력 조회
7. 일시정지된 잡 및 스케줄러 없이 실행된 Admin의 수동 실행 거부
8. Health/Ready 체크

실행: python -m pytest test/admin_test.py -v
"""

import logging
import sqlite3

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from admin.main import create_app
from database.sqlite3.connection import TransactionContext
from scheduler import Scheduler, SchedulerConfig

logger = logging.getLogger(__name__)

BASE = "/api/admin/schedule/job"


@pytest_asyncio.fixture
async def scheduler(database, clock):
    scheduler = Scheduler(SchedulerConfig(), clock=clock)
    yield scheduler
    await scheduler.drain()


@pytest_asyncio.fixture
async def client(scheduler):
    """스케줄러와 연결된 Admin 앱 클라이언트 (DB는 database fixture가 초기화)"""
    app = create_app({}, scheduler=scheduler)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def create_job(client, **overrides) -> dict:
    body = {
        "handlerBeanName": "demo",
        "handlerMethodName": "ping",
        "cronExpression": "* * * * *",
        "params": '{"message": "hello"}',
        "remark": "admin test",
    }
    body.update(overrides)
    body = {key: value for key, value in body.items() if value is not None}
    response = await client.post(f"{BASE}/add", json=body)
    assert response.status_code == 200, response.text
    return response.json()


class TestJobApi:
    """잡 관리 API 테스트"""

    @pytest.mark.asyncio
    async def test_create_and_get(self, client):
        created = await create_job(client)

        assert created["jobId"] > 0
        assert created["beanName"] == "demo"
        assert created["methodName"] == "ping"
        assert created["cronExpression"] == "* * * * *"
        assert created["status"] == 0
        assert created["state"] == "SCHEDULED"
        assert created["nextFireTime"].startswith("2024-01-01T10:01:00")

        response = await client.get(f"{BASE}/info/{created['jobId']}")
        assert response.status_code == 200
        assert response.json()["remark"] == "admin test"
        logger.info(f"Created job: {created}")

    @pytest.mark.asyncio
    async def test_create_accepts_short_aliases_and_blank_fields(self, client):
        created = await create_job(
            client,
            handlerBeanName=None,
            handlerMethodName=None,
            beanName="report",
            methodName="daily",
            params="",
            remark="  ",
        )
        assert created["beanName"] == "report"
        assert created["methodName"] == "daily"
        assert created["params"] is None
        assert created["remark"] is None

    @pytest.mark.asyncio
    async def test_create_with_object_params(self, client):
        created = await create_job(client, params={"limit": 10})
        assert created["params"] == '{"limit": 10}'

    @pytest.mark.asyncio
    async def test_create_invalid_cron(self, client):
        response = await client.post(f"{BASE}/add", json={
            "handlerBeanName": "demo",
            "handlerMethodName": "ping",
            "cronExpression": "0 0 12 * * ? 2024",
        })
        assert response.status_code == 400
        assert "cron" in response.json()["detail"].lower()

        response = await client.get(f"{BASE}/list")
        assert response.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_create_missing_fields(self, client):
        response = await client.post(f"{BASE}/add", json={"cronExpression": "* * * * *"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update(self, client, scheduler):
        created = await create_job(client)

        response = await client.post(f"{BASE}/update", json={
            "jobId": created["jobId"],
            "cronExpression": "0 * * * *",
            "remark": "changed",
        })
        assert response.status_code == 200
        updated = response.json()
        assert updated["cronExpression"] == "0 * * * *"
        assert updated["remark"] == "changed"
        assert updated["beanName"] == "demo"
        assert updated["nextFireTime"].startswith("2024-01-01T11:00:00")

    @pytest.mark.asyncio
    async def test_update_errors(self, client):
        created = await create_job(client)

        response = await client.post(f"{BASE}/update", json={"cronExpression": "* * * * *"})
        assert response.status_code == 400

        response = await client.post(f"{BASE}/update", json={"jobId": 9999, "remark": "x"})
        assert response.status_code == 404

        response = await client.post(f"{BASE}/update", json={
            "jobId": created["jobId"],
            "cronExpression": "* * *",
        })
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_suspend_and_start(self, client):
        job_id = (await create_job(client))["jobId"]

        response = await client.post(f"{BASE}/suspend/{job_id}")
        assert response.status_code == 200
        assert response.json()["status"] == 1
        assert response.json()["state"] == "PAUSED"
        assert response.json()["nextFireTime"] is None

        response = await client.post(f"{BASE}/suspend/{job_id}")
        assert response.status_code == 400

        response = await client.post(f"{BASE}/start/{job_id}")
        assert response.status_code == 200
        assert response.json()["status"] == 0
        assert response.json()["state"] == "SCHEDULED"

        response = await client.post(f"{BASE}/start/{job_id}")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, client):
        job_id = (await create_job(client))["jobId"]

        response = await client.post(f"{BASE}/delete/{job_id}")
        assert response.status_code == 200

        assert (await client.get(f"{BASE}/info/{job_id}")).status_code == 404
        assert (await client.post(f"{BASE}/delete/{job_id}")).status_code == 404
        assert (await client.post(f"{BASE}/suspend/{job_id}")).status_code == 404
        assert (await client.post(f"{BASE}/trig/{job_id}")).status_code == 404

        response = await client.get(f"{BASE}/list")
        assert response.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_not_found(self, client):
        assert (await client.get(f"{BASE}/info/9999")).status_code == 404
        assert (await client.post(f"{BASE}/start/9999")).status_code == 404

    @pytest.mark.asyncio
    async def test_list_paging_and_filter(self, client):
        for i in range(3):
            await create_job(client, handlerMethodName=f"m{i}")
        paused = await create_job(client, handlerBeanName="other")
        await client.post(f"{BASE}/suspend/{paused['jobId']}")

        response = await client.get(f"{BASE}/list", params={"page": 1, "limit": 3})
        body = response.json()
        assert body["total"] == 4
        assert body["pages"] == 2
        assert len(body["items"]) == 3
        assert body["items"][0]["jobId"] == paused["jobId"]

        response = await client.get(f"{BASE}/list", params={"status": 1})
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["beanName"] == "other"

        response = await client.get(f"{BASE}/list", params={"beanName": "demo", "methodName": "m1"})
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_trigger_and_log_list(self, client, scheduler):
        job_id = (await create_job(client))["jobId"]
        ghost_id = (await create_job(client, handlerBeanName="ghost", handlerMethodName="run"))["jobId"]

        assert (await client.post(f"{BASE}/trig/{job_id}")).status_code == 200
        assert (await client.post(f"{BASE}/trig/{ghost_id}")).status_code == 200
        await scheduler.drain()

        response = await client.get(f"{BASE}/log/list", params={"jobId": job_id})
        body = response.json()
        assert body["total"] == 1
        log = body["items"][0]
        assert log["jobId"] == job_id
        assert log["status"] == 0
        assert log["attempt"] == 1
        assert log["error"] is None
        assert log["params"] == '{"message": "hello"}'

        response = await client.get(f"{BASE}/log/list", params={"status": 1})
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["jobId"] == ghost_id
        assert body["items"][0]["error"] == "Handler not found: ghost.run"

    @pytest.mark.asyncio
    async def test_trigger_suspended_job(self, client, scheduler):
        job_id = (await create_job(client))["jobId"]
        assert (await client.post(f"{BASE}/suspend/{job_id}")).status_code == 200

        response = await client.post(f"{BASE}/trig/{job_id}")
        assert response.status_code == 400
        await scheduler.drain()

        response = await client.get(f"{BASE}/log/list", params={"jobId": job_id})
        assert response.json()["total"] == 0

        assert (await client.post(f"{BASE}/trig/999999")).status_code == 404


class TestAdminWithoutScheduler:
    """스케줄러 없이 실행된 Admin (저장소만 변경)"""

    @pytest_asyncio.fixture
    async def standalone_client(self, database):
        app = create_app({})
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

    @pytest.mark.asyncio
    async def test_create_without_scheduler(self, standalone_client):
        created = await create_job(standalone_client)
        assert created["state"] is None
        assert created["nextFireTime"] is None

        response = await standalone_client.post(f"{BASE}/trig/{created['jobId']}")
        assert response.status_code == 503


class TestHealth:
    """Health/Ready 체크 테스트"""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_ready(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["database"] == "ok"

    @pytest.mark.asyncio
    async def test_ready_driver_error(self, client, monkeypatch):
        """드라이버 예외도 503으로 응답"""
        async def broken_fetch_one(self, sql, parameters=None):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(TransactionContext, "fetch_one", broken_fetch_one)

        response = await client.get("/ready")
        assert response.status_code == 503
        assert response.json()["status"] == "not ready"
        assert "disk I/O error" in response.json()["error"]
