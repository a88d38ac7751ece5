import asyncio
import pathlib
import sys
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from points_economy.models import Reward, RewardRedemption
from points_economy.crud import create_reward
from points_economy.cap_data import compute_cap_data, get_reward_cap_data

NOW = datetime(2026, 6, 1, 9, 0)


def test_uncapped_reward_has_no_remaining_counts():
    reward = Reward(name="Sticker", points_cost=5)
    data = compute_cap_data(reward, 12, 3, 1, NOW)
    assert data.total_redemptions_used == 12
    assert data.remaining_total is None
    assert data.remaining_for_child is None
    assert not data.is_expired
    assert not data.is_sold_out


def test_remaining_counts_never_go_negative():
    reward = Reward(
        name="Pizza night",
        points_cost=40,
        max_redemptions_total=3,
        max_redemptions_per_child=1,
        expires_at=NOW - timedelta(hours=1),
    )
    data = compute_cap_data(reward, 4, 2, 7, NOW)
    assert data.remaining_total == 0
    assert data.remaining_for_child == 0
    assert data.is_sold_out
    assert data.is_expired

    # without a child there is nothing per-child to report
    assert compute_cap_data(reward, 1, 0, None, NOW).remaining_for_child is None


def test_cap_data_counts_redemptions():
    async def run():
        engine = create_async_engine("sqlite+aiosqlite:///:memory:")
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        Session = async_sessionmaker(engine, expire_on_commit=False)
        async with Session() as session:
            reward = await create_reward(
                session,
                Reward(
                    name="Bake cookies",
                    points_cost=30,
                    max_redemptions_total=4,
                    max_redemptions_per_child=2,
                ),
            )
            for child_id, status in ((1, "pending"), (1, "cancelled"), (2, "fulfilled")):
                session.add(
                    RewardRedemption(
                        reward_id=reward.id,
                        child_id=child_id,
                        points_spent=30,
                        status=status,
                    )
                )
            await session.commit()

            data = await get_reward_cap_data(session, reward.id, 1, reward, NOW)
            assert data.total_redemptions_used == 2
            assert data.remaining_total == 2
            assert data.remaining_for_child == 1
            assert not data.is_sold_out

            anonymous = await get_reward_cap_data(session, reward.id, None, reward, NOW)
            assert anonymous.remaining_for_child is None
        await engine.dispose()

    asyncio.run(run())
