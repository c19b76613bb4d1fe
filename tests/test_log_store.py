import asyncio
import json

import pytest

from pibot.core.errors import StorageError
from pibot.core.types import Turn
from pibot.runtime_state import SessionLogStore


def _turn(n: int, role: str = "user") -> Turn:
    return Turn(
        id=f"t{n}",
        role=role,
        content=f"message {n}",
        timestamp=1_700_000_000_000 + n,
        author_id="42",
        channel_id="7",
    )


def test_initialize_is_idempotent(store, sessions_dir):
    asyncio.run(store.initialize())
    asyncio.run(store.initialize())
    assert sessions_dir.is_dir()


def test_load_missing_session_returns_none(store):
    asyncio.run(store.initialize())
    assert asyncio.run(store.load("nobody")) is None


def test_append_writes_one_line_per_turn(store):
    async def scenario():
        await store.initialize()
        await store.append("42-7", _turn(1))
        await store.append("42-7", _turn(2, "assistant"))

    asyncio.run(scenario())

    lines = store.path_for("42-7").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["id"] == "t1"
    assert json.loads(lines[1])["role"] == "assistant"


def test_load_rebuilds_session_from_log(store):
    turns = [_turn(1), _turn(2, "assistant"), _turn(3)]

    async def scenario():
        await store.initialize()
        for turn in turns:
            await store.append("42-7", turn)
        return await store.load("42-7")

    session = asyncio.run(scenario())

    assert session is not None
    assert session.id == "42-7"
    assert session.author_id == "42"
    assert session.channel_id == "7"
    assert session.turns == turns
    assert session.created_at == turns[0].timestamp
    assert session.updated_at == turns[-1].timestamp
    assert session.model is None


def test_corrupt_trailing_record_is_skipped(store):
    async def scenario():
        await store.initialize()
        await store.append("s", _turn(1))
        await store.append("s", _turn(2))
        with store.path_for("s").open("a", encoding="utf-8") as fh:
            fh.write('{"id": "t3", "role": "us')
        return await store.load("s")

    session = asyncio.run(scenario())

    assert [t.id for t in session.turns] == ["t1", "t2"]


def test_corrupt_middle_record_raises_storage_error(store):
    async def scenario():
        await store.initialize()
        await store.append("s", _turn(1))
        with store.path_for("s").open("a", encoding="utf-8") as fh:
            fh.write("not json at all\n")
        await store.append("s", _turn(2))
        return await store.load("s")

    with pytest.raises(StorageError):
        asyncio.run(scenario())


def test_legacy_camel_case_keys_are_accepted(store, sessions_dir):
    sessions_dir.mkdir(parents=True)
    record = {
        "id": "abc",
        "role": "user",
        "content": "hi",
        "timestamp": 1,
        "userId": "42",
        "channelId": "7",
    }
    store.path_for("42-7").write_text(json.dumps(record) + "\n", encoding="utf-8")

    session = asyncio.run(store.load("42-7"))

    assert session.author_id == "42"
    assert session.turns[0].channel_id == "7"


def test_clear_removes_log_and_tolerates_missing(store):
    async def scenario():
        await store.initialize()
        await store.append("s", _turn(1))
        await store.clear("s")
        await store.clear("s")
        return await store.load("s")

    assert asyncio.run(scenario()) is None
    assert not store.path_for("s").exists()


def test_unreadable_log_raises_storage_error(store, sessions_dir):
    # A directory where the log file should be cannot be read.
    store.path_for("s").mkdir(parents=True)
    with pytest.raises(StorageError):
        asyncio.run(store.load("s"))


def test_torn_tail_is_repaired_so_later_appends_survive(sessions_dir):
    async def crashed_run():
        store = SessionLogStore(sessions_dir)
        await store.initialize()
        await store.append("42-7", _turn(1))
        with store.path_for("42-7").open("a", encoding="utf-8") as fh:
            fh.write('{"id": "torn", "role": "us')

    async def restarted_run():
        store = SessionLogStore(sessions_dir)
        session = await store.load("42-7")
        await store.append("42-7", _turn(2))
        await store.append("42-7", _turn(3))
        return session

    async def next_restart():
        return await SessionLogStore(sessions_dir).load("42-7")

    asyncio.run(crashed_run())
    after_crash = asyncio.run(restarted_run())
    reloaded = asyncio.run(next_restart())

    assert [t.id for t in after_crash.turns] == ["t1"]
    assert [t.id for t in reloaded.turns] == ["t1", "t2", "t3"]


def test_torn_multibyte_character_in_tail_is_skipped(store):
    async def scenario():
        await store.initialize()
        await store.append("s", _turn(1))
        with store.path_for("s").open("ab") as fh:
            fh.write(b'{"id": "t2", "role": "user", "content": "caf\xc3')
        return await store.load("s")

    session = asyncio.run(scenario())

    assert [t.id for t in session.turns] == ["t1"]
    assert store.path_for("s").read_bytes().endswith(b"\n")


def test_append_starts_a_new_line_after_unterminated_record(store, sessions_dir):
    sessions_dir.mkdir(parents=True)
    store.path_for("s").write_text(_turn(1).to_log_line(), encoding="utf-8")

    async def scenario():
        await store.append("s", _turn(2))
        return await store.load("s")

    session = asyncio.run(scenario())
    assert [t.id for t in session.turns] == ["t1", "t2"]


def test_only_a_torn_record_loads_as_no_session(store, sessions_dir):
    sessions_dir.mkdir(parents=True)
    store.path_for("s").write_bytes(b'{"id": "t1", "ro')

    assert asyncio.run(store.load("s")) is None
    assert store.path_for("s").read_bytes() == b""
