"""Unit tests for the activity ledger."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from collabhub.config import get_settings
from collabhub.kernel.activity import ActivityLedger
from collabhub.kernel.models.activity import ActivityAction, ActivityEntry, EntityType


@pytest_asyncio.fixture
async def project(registry, owner):
    return await registry.create_project(owner.id, "Ledger")


@pytest.mark.asyncio
async def test_newest_first_with_actor(db_session, owner, alice, project):
    ledger = ActivityLedger(db_session)
    await ledger.append(project.id, owner.id, ActivityAction.PROJECT_CREATED, "Ledger", EntityType.PROJECT, project.id)
    await ledger.append(project.id, alice.id, ActivityAction.TASK_CREATED, "Write docs", EntityType.TASK)
    await db_session.commit()

    feed = await ledger.query(project.id)

    assert [item.entry.action for item in feed] == [
        ActivityAction.TASK_CREATED,
        ActivityAction.PROJECT_CREATED,
    ]
    assert feed[0].actor_name == "Alice"
    assert feed[0].actor_email == "alice@example.com"
    assert feed[0].entry.details == "Write docs"
    assert feed[1].entry.entity_id == project.id


@pytest.mark.asyncio
async def test_same_timestamp_orders_by_insertion(db_session, owner, project):
    stamp = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    for title in ("first", "second", "third"):
        db_session.add(ActivityEntry(
            project_id=project.id,
            user_id=owner.id,
            action=ActivityAction.TASK_CREATED,
            details=title,
            entity_type=EntityType.TASK,
            created_at=stamp,
        ))
        await db_session.flush()
    await db_session.commit()

    ledger = ActivityLedger(db_session)
    first_read = [item.entry.details for item in await ledger.query(project.id)]
    second_read = [item.entry.details for item in await ledger.query(project.id)]

    assert first_read == ["third", "second", "first"]
    assert first_read == second_read


@pytest.mark.asyncio
async def test_limit(db_session, owner, project):
    ledger = ActivityLedger(db_session)
    for i in range(5):
        await ledger.append(project.id, owner.id, ActivityAction.TASK_UPDATED, f"task {i}", EntityType.TASK)
    await db_session.commit()

    feed = await ledger.query(project.id, limit=2)
    assert [item.entry.details for item in feed] == ["task 4", "task 3"]


@pytest.mark.asyncio
async def test_limit_is_capped(db_session, owner, project):
    cap = get_settings().activity_feed_limit
    ledger = ActivityLedger(db_session)
    for i in range(cap + 5):
        await ledger.append(project.id, owner.id, ActivityAction.TASK_UPDATED, f"task {i}", EntityType.TASK)
    await db_session.commit()

    assert len(await ledger.query(project.id, limit=cap * 10)) == cap


@pytest.mark.asyncio
async def test_feeds_are_per_project(db_session, registry, owner, project):
    other = await registry.create_project(owner.id, "Other")
    ledger = ActivityLedger(db_session)
    await ledger.append(other.id, owner.id, ActivityAction.PROJECT_CREATED, "Other", EntityType.PROJECT)
    await db_session.commit()

    assert await ledger.query(project.id) == []
    assert len(await ledger.query(other.id)) == 1
