import logging
import uuid

import pytest

from jobflow.definitions import WorkflowTransition
from jobflow.workflow import (
    AgentStarted,
    AgentTransitioned,
    WorkflowFailed,
    WorkflowFinished,
    WorkflowPaused,
    WorkflowResumed,
    WorkflowStarted,
    WorkflowState,
    WorkflowStatus,
    WorkflowSuspended,
    apply_workflow_event,
    decode_workflow_event,
    encode_workflow_event,
    find_next_transition,
    output_as_input,
    workflow_persistence_id,
)


def sess():
    return uuid.uuid4()


def test_started_then_agent_started_sets_running():
    s = WorkflowState()
    assert s.status == WorkflowStatus.PENDING
    s = apply_workflow_event(s, WorkflowStarted())
    assert s.status == WorkflowStatus.RUNNING
    session = sess()
    s = apply_workflow_event(s, AgentStarted(agent_name="writer", session_id=session, input="go"))
    assert s.current_agent == "writer"
    assert s.current_session_id == session


def test_transition_moves_to_target_agent_and_session():
    frm, to = sess(), sess()
    s = apply_workflow_event(WorkflowState(), AgentStarted("a", frm, "x"))
    s = apply_workflow_event(
        s,
        AgentTransitioned(
            from_agent="a",
            to_agent="b",
            from_session=frm,
            to_session=to,
            condition="output.score > 80",
        ),
    )
    assert s.current_agent == "b"
    assert s.current_session_id == to
    assert s.status == WorkflowStatus.RUNNING


def test_pause_then_resume_round_trips_status():
    session = sess()
    s = apply_workflow_event(WorkflowState(), AgentStarted("a", session, "x"))
    s = apply_workflow_event(s, WorkflowPaused(session_id=session, tool_call_id="tc"))
    assert s.status == WorkflowStatus.AWAITING_USER_INPUT
    assert s.pending_tool_call == "tc"
    s = apply_workflow_event(s, WorkflowResumed())
    assert s.status == WorkflowStatus.RUNNING
    assert s.pending_tool_call is None


def test_finished_and_failed_are_terminal_statuses():
    done = apply_workflow_event(WorkflowState(), WorkflowFinished(output="ok"))
    assert done.status == WorkflowStatus.FINISHED
    failed = apply_workflow_event(WorkflowState(), WorkflowFailed(error="boom", recoverable=False))
    assert failed.status == WorkflowStatus.FAILED


def test_suspended_status():
    s = apply_workflow_event(WorkflowState(), WorkflowSuspended())
    assert s.status == WorkflowStatus.SUSPENDED


def test_apply_rejects_unknown_event():
    with pytest.raises(TypeError):
        apply_workflow_event(WorkflowState(), "nope")


def test_unconditional_transition_always_matches():
    transitions = [WorkflowTransition(to="next", condition=None)]
    assert find_next_transition(transitions, {}) == ("next", None)


def test_conditional_transition_matches_on_expression():
    transitions = [
        WorkflowTransition(to="high", condition="output.score > 80"),
        WorkflowTransition(to="low", condition=None),
    ]
    assert find_next_transition(transitions, {"score": 95}) == ("high", "output.score > 80")
    assert find_next_transition(transitions, {"score": 10})[0] == "low"


def test_no_matching_transition_returns_none():
    transitions = [WorkflowTransition(to="only", condition="output.approved == true")]
    assert find_next_transition(transitions, {"approved": False}) is None


def test_failing_condition_is_skipped_and_logged(caplog):
    transitions = [
        WorkflowTransition(to="bad", condition="output.score > 80"),
        WorkflowTransition(to="fallback", condition=None),
    ]
    with caplog.at_level(logging.WARNING, logger="jobflow.workflow"):
        result = find_next_transition(transitions, {})
    assert result == ("fallback", None)
    assert any("failed to evaluate" in r.getMessage() for r in caplog.records)


def test_non_bool_condition_does_not_match():
    transitions = [WorkflowTransition(to="x", condition="output.score")]
    assert find_next_transition(transitions, {"score": 1}) is None


def test_no_transitions_returns_none():
    assert find_next_transition([], {"a": 1}) is None


def test_output_as_input_unwraps_json_string():
    assert output_as_input("hello") == "hello"
    assert output_as_input({"k": 1}) == '{"k":1}'


def test_output_as_input_non_object_values():
    assert output_as_input(None) == "null"
    assert output_as_input([1, 2]) == "[1,2]"


def test_workflow_persistence_id():
    assert workflow_persistence_id("run-1") == "workflow/run-1"


@pytest.mark.parametrize(
    "event",
    [
        WorkflowStarted(),
        AgentStarted("a", uuid.UUID(int=1), "hi"),
        AgentTransitioned("a", "b", uuid.UUID(int=1), uuid.UUID(int=2), "output.x == 1"),
        AgentTransitioned("a", "b", uuid.UUID(int=1), uuid.UUID(int=2), None),
        WorkflowFinished(output={"report": "all done"}),
        WorkflowSuspended(),
        WorkflowFailed(error="boom", recoverable=True),
        WorkflowPaused(session_id=uuid.UUID(int=3), tool_call_id="tc"),
        WorkflowPaused(session_id=uuid.UUID(int=3), tool_call_id=None),
        WorkflowResumed(),
    ],
)
def test_encode_decode_round_trip(event):
    assert decode_workflow_event(encode_workflow_event(event)) == event


def test_decode_rejects_garbage():
    with pytest.raises(ValueError):
        decode_workflow_event(b"not json")
    with pytest.raises(ValueError):
        decode_workflow_event(b'{"type": "Bogus"}')
    with pytest.raises(ValueError):
        decode_workflow_event(b'{"type": "AgentStarted"}')
    with pytest.raises(ValueError):
        decode_workflow_event(b"[1]")


def test_state_dict_round_trip():
    state = WorkflowState(
        status=WorkflowStatus.AWAITING_USER_INPUT,
        current_agent="a",
        current_session_id=uuid.UUID(int=5),
        pending_tool_call="tc",
    )
    assert WorkflowState.from_dict(state.to_dict()) == state