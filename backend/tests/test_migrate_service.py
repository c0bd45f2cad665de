"""
End-to-end tests for the process:migrate batch.
"""

import json
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from core.crypto import decrypt_stored_identifier, hash_identifier, IdentifierDecryptError
from db.models import DoneQuestion, StarQuestion, User, UserSetting
from services.legacy_records import LegacyDataError, parse_legacy_export
from services.migrate_service import MigrateService, mask_id_number
from services.user_service import UserService, verify_password

ALICE_ID = "123456789012345678"


def legacy_export(**records):
    return parse_legacy_export(json.dumps(records))


def alice(**overrides):
    data = {
        "questionDone": ["p1"],
        "starQuestions": [],
        "userInfo": {"xx": "Sch", "xm": "Alice", "sfz": ALICE_ID, "zp": "", "zy": "CS"},
        "operateTime": {"operateType": "x", "time": 1700000000},
        "userSettings": {"publicStat": True},
    }
    data.update(overrides)
    return data


async def all_users(session_factory):
    async with session_factory() as session:
        return (await session.execute(select(User))).scalars().all()


async def count(session_factory, model):
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


class TestNewUser:

    @pytest.mark.asyncio
    async def test_single_record_scenario(self, session_factory, questions, fetch_question):
        service = MigrateService(session_factory)

        summary = await service.process_users(legacy_export(**{ALICE_ID: alice()}))

        assert summary.ok
        assert (summary.processed, summary.created, summary.updated) == (1, 1, 0)

        users = await all_users(session_factory)
        assert len(users) == 1
        user = users[0]
        assert user.name == "Alice"
        assert user.school == "Sch"
        assert user.major == "CS"
        assert user.main_subject == 1
        assert verify_password("empty", user.password)
        assert decrypt_stored_identifier(user.id_number) == ALICE_ID
        assert user.identifier == hash_identifier(ALICE_ID)

        async with session_factory() as session:
            done = (await session.execute(select(DoneQuestion))).scalars().all()
        assert [(row.user, row.pid) for row in done] == [(user.uuid, "p1")]
        assert (await fetch_question("p1")).done_count == 1
        assert await count(session_factory, UserSetting) == 0

    @pytest.mark.asyncio
    async def test_public_stat_false_persists_setting(self, session_factory, questions):
        service = MigrateService(session_factory)

        await service.process_users(legacy_export(**{ALICE_ID: alice(userSettings={"publicStat": False})}))

        async with session_factory() as session:
            row = (await session.execute(select(UserSetting))).scalar_one()
        assert row.setting == {"show_user_stat": False}

    @pytest.mark.asyncio
    async def test_missing_settings_object_writes_nothing(self, session_factory, questions):
        data = alice()
        del data["userSettings"]

        await MigrateService(session_factory).process_users(legacy_export(**{ALICE_ID: data}))

        assert await count(session_factory, UserSetting) == 0


class TestExistingUser:

    @pytest.mark.asyncio
    async def test_match_is_updated_not_duplicated(self, session_factory, questions, make_user):
        existing = await make_user(ALICE_ID, name="Alice Old")

        summary = await MigrateService(session_factory).process_users(
            legacy_export(**{ALICE_ID: alice(starQuestions=["p2"])})
        )

        assert (summary.created, summary.updated) == (0, 1)
        users = await all_users(session_factory)
        assert [u.uuid for u in users] == [existing.uuid]

        user = users[0]
        expected = datetime.fromtimestamp(1700000000, tz=timezone.utc)
        assert user.last_login == expected
        assert user.reg_date == expected
        assert user.identifier == hash_identifier(ALICE_ID)
        # profile fields are not overwritten for existing users
        assert user.name == "Alice Old"
        assert await count(session_factory, StarQuestion) == 1

    @pytest.mark.asyncio
    async def test_existing_identifier_hash_is_kept(self, session_factory, questions, make_user):
        await make_user(ALICE_ID, identifier="already-set")

        await MigrateService(session_factory).process_users(legacy_export(**{ALICE_ID: alice()}))

        assert (await all_users(session_factory))[0].identifier == "already-set"

    @pytest.mark.asyncio
    async def test_replaying_the_export_inflates_counters_only(self, session_factory, questions, fetch_question):
        records = legacy_export(**{ALICE_ID: alice(starQuestions=["p1", "p3"])})

        await MigrateService(session_factory).process_users(records)
        second = await MigrateService(session_factory).process_users(records)

        assert (second.created, second.updated) == (0, 1)
        assert len(await all_users(session_factory)) == 1
        assert await count(session_factory, StarQuestion) == 2
        assert await count(session_factory, DoneQuestion) == 1
        assert (await fetch_question("p1")).incorrect_count == 2
        assert (await fetch_question("p1")).done_count == 2
        assert (await fetch_question("p3")).incorrect_count == 2


class TestBatchAbort:

    @pytest.mark.asyncio
    async def test_failure_keeps_earlier_records_and_stops(self, session_factory, questions):
        class FailingUsers(UserService):
            async def create_user(self, db, id_number, name, *args, **kwargs):
                if name == "Bob":
                    raise RuntimeError("user service unavailable")
                return await super().create_user(db, id_number, name, *args, **kwargs)

        bob_info = {"xx": "Sch", "xm": "Bob", "sfz": "2", "zp": "", "zy": "CS"}
        carol_info = {"xx": "Sch", "xm": "Carol", "sfz": "3", "zp": "", "zy": "CS"}
        records = legacy_export(**{
            "1": alice(),
            "2": alice(userInfo=bob_info),
            "3": alice(userInfo=carol_info),
        })

        summary = await MigrateService(session_factory, users=FailingUsers()).process_users(records)

        assert not summary.ok
        assert isinstance(summary.error, RuntimeError)
        assert summary.processed == 1
        assert [u.name for u in await all_users(session_factory)] == ["Alice"]

    @pytest.mark.asyncio
    async def test_undecryptable_user_aborts_before_any_record(self, session_factory, questions, make_user):
        await make_user("999", stored_id="corrupt")

        summary = await MigrateService(session_factory).process_users(legacy_export(**{ALICE_ID: alice()}))

        assert isinstance(summary.error, IdentifierDecryptError)
        assert summary.processed == 0
        assert await count(session_factory, DoneQuestion) == 0

    @pytest.mark.asyncio
    async def test_unreadable_export_is_reported(self, session_factory, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{not json", encoding="utf-8")

        summary = await MigrateService(session_factory).process_file(path)

        assert isinstance(summary.error, LegacyDataError)
        assert summary.processed == 0

    @pytest.mark.asyncio
    async def test_process_file_runs_whole_export(self, session_factory, questions, tmp_path):
        path = tmp_path / "data.json"
        path.write_text(json.dumps({ALICE_ID: alice(), "42": alice(userInfo={"xm": "Dan"})}), encoding="utf-8")

        summary = await MigrateService(session_factory).process_file(path)

        assert summary.ok
        assert summary.processed == 2
        assert sorted(u.name for u in await all_users(session_factory)) == ["Alice", "Dan"]


def test_mask_id_number():
    assert mask_id_number(ALICE_ID) == "*" * 14 + "5678"
    assert mask_id_number("12") == "**"
