import asyncio
import pathlib
import sys
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from points_economy.models import ChildAccount
from points_economy.crud import create_child_account, get_child_account
from points_economy.awards import award_task_completion, xp_for_difficulty
from points_economy.exceptions import AccountNotFound, ValidationError
from points_economy.ledger import get_ledger, verify_ledger

DAY_ONE = datetime(2026, 4, 6, 12, 0)


async def _make_sessionmaker():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine, async_sessionmaker(engine, expire_on_commit=False)


def test_xp_for_difficulty():
    assert xp_for_difficulty("easy") == 10
    assert xp_for_difficulty("medium") == 15
    assert xp_for_difficulty("hard") == 35
    assert xp_for_difficulty(None) == 15
    assert xp_for_difficulty("legendary") == 15


def test_first_completion_records_breakdown():
    async def run():
        engine, Session = await _make_sessionmaker()
        async with Session() as session:
            await create_child_account(session, ChildAccount(child_id=1))
            award = await award_task_completion(
                session,
                1,
                20,
                completed_at=DAY_ONE,
                due_at=DAY_ONE + timedelta(hours=30),
                difficulty="medium",
                reference_id=42,
            )
            # streak of 1 is worth 5% of 20, early by 30 hours is worth 15%
            assert award.breakdown == {"base": 20, "streak": 1, "early": 3}
            assert award.points_awarded == 24
            assert award.xp_awarded == 15
            assert award.current_streak_days == 1
            assert not award.leveled_up
            assert award.new_balance == 24

            _, entries = await get_ledger(session, 1)
            assert len(entries) == 1
            assert entries[0].transaction_type == "earned"
            assert entries[0].reference_type == "task_completion"
            assert entries[0].reference_id == 42
            assert entries[0].breakdown == {"base": 20, "streak": 1, "early": 3}

            account = await get_child_account(session, 1)
            assert account.total_xp_earned == 15
            assert account.experience_points == 15
            assert account.level == 1
        await engine.dispose()

    asyncio.run(run())


def test_level_up_pays_bonus_for_each_level():
    async def run():
        engine, Session = await _make_sessionmaker()
        async with Session() as session:
            await create_child_account(session, ChildAccount(child_id=1))
            award = await award_task_completion(
                session, 1, 10, completed_at=DAY_ONE, xp=260
            )
            assert award.old_level == 1
            assert award.new_level == 3
            assert award.leveled_up
            assert award.new_balance == 10 + 25

            _, entries = await get_ledger(session, 1)
            bonus = entries[-1]
            assert bonus.transaction_type == "bonus"
            assert bonus.reference_type == "level_up"
            assert bonus.points_amount == 25
            assert bonus.breakdown == {"from_level": 1, "to_level": 3}

            account = await get_child_account(session, 1)
            assert account.level == 3
            assert account.experience_points == 10
            assert account.total_points_earned == 35
            await verify_ledger(session, 1)
        await engine.dispose()

    asyncio.run(run())


def test_streak_milestone_is_paid_once_per_run():
    async def run():
        engine, Session = await _make_sessionmaker()
        async with Session() as session:
            await create_child_account(session, ChildAccount(child_id=1))

            async def complete(when):
                return await award_task_completion(
                    session, 1, 10, completed_at=when, xp=0
                )

            await complete(DAY_ONE)
            await complete(DAY_ONE + timedelta(days=1))
            third = await complete(DAY_ONE + timedelta(days=2))
            assert third.current_streak_days == 3
            assert third.milestones_paid == [3]

            again = await complete(DAY_ONE + timedelta(days=2, hours=3))
            assert again.current_streak_days == 3
            assert again.milestones_paid == []

            _, entries = await get_ledger(session, 1)
            milestones = [e for e in entries if e.reference_type == "streak_milestone"]
            assert len(milestones) == 1
            assert milestones[0].points_amount == 15

            # missing two days starts a new run
            restart = await complete(DAY_ONE + timedelta(days=5))
            assert restart.current_streak_days == 1
            account = await get_child_account(session, 1)
            assert account.last_milestone_paid == 0
            assert account.longest_streak_days == 3

            await complete(DAY_ONE + timedelta(days=6))
            new_run = await complete(DAY_ONE + timedelta(days=7))
            assert new_run.milestones_paid == [3]
            await verify_ledger(session, 1)
        await engine.dispose()

    asyncio.run(run())


def test_invalid_completions_are_rejected():
    async def run():
        engine, Session = await _make_sessionmaker()
        async with Session() as session:
            await create_child_account(session, ChildAccount(child_id=1))
            with pytest.raises(ValidationError):
                await award_task_completion(session, 1, 0)
            with pytest.raises(ValidationError):
                await award_task_completion(session, 1, 10, xp=-1)
            with pytest.raises(AccountNotFound):
                await award_task_completion(session, 2, 10)
            _, entries = await get_ledger(session, 1)
            assert entries == []
        await engine.dispose()

    asyncio.run(run())
