"""Tests for viewing and updating household settings."""

import asyncio
import pathlib
import sys

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel

# Allow importing the points_economy package
sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from points_economy.main import app
from points_economy.database import get_session


async def _setup_test_db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    TestSession = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_session():
        async with TestSession() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    return TestSession


def test_settings_endpoints():
    async def run():
        await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/settings/")
            assert resp.status_code == 200
            data = resp.json()
            assert data["site_name"] == "TaskBuddy"
            assert data["streak_grace_period_hours"] == 4

            resp = await client.put("/settings/", json={"streak_grace_period_hours": 6})
            assert resp.status_code == 200
            assert resp.json()["streak_grace_period_hours"] == 6
            assert resp.json()["site_name"] == "TaskBuddy"

            # grace period is limited to one day
            resp = await client.put("/settings/", json={"streak_grace_period_hours": 30})
            assert resp.status_code == 422

            resp = await client.get("/settings/")
            assert resp.json()["streak_grace_period_hours"] == 6

    asyncio.run(run())
