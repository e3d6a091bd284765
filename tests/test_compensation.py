import pytest

from arion_flow.core.compensation import CompensationStack


def test_unwind_runs_actions_newest_first():
    calls = []
    stack = CompensationStack("test")
    stack.push("first", lambda: calls.append("first"))
    stack.push("second", lambda: calls.append("second"))

    assert stack.unwind() == []
    assert calls == ["second", "first"]
    assert stack.pending == []


def test_failed_action_does_not_stop_unwinding():
    calls = []

    def boom():
        raise RuntimeError("volume already gone")

    stack = CompensationStack("test")
    stack.push("delete volume", lambda: calls.append("volume"))
    stack.push("terminate pod", boom)

    assert stack.unwind() == ["terminate pod"]
    assert calls == ["volume"]


def test_clear_discards_actions():
    calls = []
    stack = CompensationStack("test")
    stack.push("undo", lambda: calls.append("undo"))
    stack.clear()

    assert stack.unwind() == []
    assert calls == []


def test_context_manager_unwinds_on_error_and_reraises():
    calls = []
    with pytest.raises(ValueError):
        with CompensationStack("test") as stack:
            stack.push("undo", lambda: calls.append("undo"))
            raise ValueError("step failed")
    assert calls == ["undo"]


def test_context_manager_keeps_actions_on_success():
    calls = []
    with CompensationStack("test") as stack:
        stack.push("undo", lambda: calls.append("undo"))
    assert calls == []
    assert stack.pending == ["undo"]
