from pibot.core.context import SYSTEM_TURN_ID, build_context
from pibot.core.types import Session, Turn


def _session(count: int) -> Session:
    turns = [
        Turn(
            id=f"t{i}",
            role="user" if i % 2 else "assistant",
            content=f"m{i}",
            timestamp=i,
            author_id="42",
        )
        for i in range(1, count + 1)
    ]
    return Session(
        id="42",
        author_id="42",
        turns=turns,
        created_at=1,
        updated_at=count,
        model="m",
    )


def test_window_keeps_last_turns_oldest_first():
    context = build_context(_session(10), max_turns=3)
    assert [t.id for t in context] == ["t8", "t9", "t10"]


def test_system_prompt_is_prepended():
    context = build_context(_session(10), max_turns=3, system_prompt="Be brief.", now_ms=99)

    assert len(context) == 4
    head = context[0]
    assert head.id == SYSTEM_TURN_ID
    assert head.role == "system"
    assert head.content == "Be brief."
    assert head.timestamp == 99
    assert [t.id for t in context[1:]] == ["t8", "t9", "t10"]


def test_short_history_is_returned_whole():
    context = build_context(_session(2), max_turns=50)
    assert [t.id for t in context] == ["t1", "t2"]


def test_empty_system_prompt_adds_nothing():
    context = build_context(_session(2), max_turns=50, system_prompt="")
    assert [t.id for t in context] == ["t1", "t2"]


def test_zero_window_selects_no_history():
    assert build_context(_session(5), max_turns=0) == []
    only_system = build_context(_session(5), max_turns=0, system_prompt="hi")
    assert [t.role for t in only_system] == ["system"]


def test_session_is_not_modified():
    session = _session(4)
    build_context(session, max_turns=2, system_prompt="x")
    assert [t.id for t in session.turns] == ["t1", "t2", "t3", "t4"]
