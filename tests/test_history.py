import json
import uuid

from jobflow.agent_state import (
    AgentState,
    InputMessage,
    MessageComplete,
    ToolComplete,
    agent_persistence_id,
    encode_agent_event,
)
from jobflow.history import (
    MAX_OUTPUT_CHARS,
    compact,
    render_history,
    render_message,
    truncate,
)
from jobflow.journal import InMemoryJournal
from jobflow.messages import Message, Role, TextPart, ThinkingPart, ToolCallPart
from jobflow.workflow import (
    AgentStarted,
    AgentTransitioned,
    WorkflowFailed,
    WorkflowFinished,
    WorkflowStarted,
    encode_workflow_event,
    workflow_persistence_id,
)


def _persist_workflow(journal, job_id, *events):
    for event in events:
        journal.persist(workflow_persistence_id(job_id), encode_workflow_event(event))


def _persist_agent(journal, session, *events):
    for event in events:
        journal.persist(agent_persistence_id(session), encode_agent_event(event))


def _text(frames):
    return "".join(f.text for f in frames)


def test_history_includes_start_agent_messages_and_finish():
    journal = InMemoryJournal()
    session = uuid.uuid4()
    _persist_workflow(
        journal,
        "job1",
        WorkflowStarted(),
        AgentStarted(agent_name="solo", session_id=session, input="go"),
        WorkflowFinished(output="the answer is 42"),
    )
    _persist_agent(
        journal,
        session,
        InputMessage(message=Message.user("u1", "go")),
        MessageComplete(
            message=Message(id="a1", role=Role.ASSISTANT, parts=[TextPart("the answer is 42")])
        ),
    )
    frames = render_history(journal, "job1")
    text = _text(frames)
    assert frames[0].text == "● workflow started\n"
    assert "workflow started" in text
    assert "finished" in text
    assert "\n▸ agent solo\n" in text
    assert "» go\n" in text
    assert all(f.job_id == "job1" for f in frames)


def test_history_renders_transition_and_failure():
    journal = InMemoryJournal()
    a, b = uuid.uuid4(), uuid.uuid4()
    _persist_workflow(
        journal,
        "j",
        AgentTransitioned("a", "b", a, b, "output.score > 80"),
        WorkflowFailed(error="boom"),
    )
    texts = [f.text for f in render_history(journal, "j")]
    assert texts == ["↳ a → b [output.score > 80]\n", "\n✗ failed: boom\n"]


def test_history_of_unknown_job_is_empty():
    assert render_history(InMemoryJournal(), "nothing") == []


def test_history_skips_malformed_entries():
    journal = InMemoryJournal()
    journal.persist(workflow_persistence_id("j"), b"not json")
    _persist_workflow(journal, "j", WorkflowStarted())
    assert [f.text for f in render_history(journal, "j")] == ["● workflow started\n"]


def test_workflow_snapshot_seq_skips_earlier_events():
    journal = InMemoryJournal()
    _persist_workflow(journal, "j", WorkflowStarted(), WorkflowFailed(error="boom"))
    journal.save_snapshot(workflow_persistence_id("j"), b"{}", 1)
    text = _text(render_history(journal, "j"))
    assert "workflow started" not in text
    assert "boom" in text


def test_agent_snapshot_is_folded_with_later_events_without_duplicates():
    journal = InMemoryJournal()
    session = uuid.uuid4()
    first = Message.user("u1", "first input")
    _persist_agent(journal, session, InputMessage(message=first))
    snapshot = AgentState(messages=[first])
    journal.save_snapshot(
        agent_persistence_id(session), json.dumps(snapshot.to_dict()).encode(), 1
    )
    _persist_agent(journal, session, ToolComplete("tc1", "done", False))
    _persist_workflow(journal, "j", AgentStarted("solo", session, "first input"))
    text = _text(render_history(journal, "j"))
    assert text.count("first input") == 1
    assert "· result [ok] done\n" in text


def test_render_message_user_and_empty_assistant():
    assert render_message(Message.user("u", "  hello  ")) == "» hello\n"
    empty = Message(id="a", role=Role.ASSISTANT, parts=[TextPart("   "), ThinkingPart("hmm")])
    assert render_message(empty) is None


def test_render_message_tool_call_and_error_result():
    call = Message(
        id="a",
        role=Role.ASSISTANT,
        parts=[ToolCallPart(id="tc", name="bash", input={"cmd": "ls"})],
    )
    line = render_message(call)
    assert line.startswith("· tool bash ")
    assert '"cmd":"ls"' in line
    result = Message.tool_result("tc", "bad", True)
    assert render_message(result) == "· result [error] bad\n"


def test_truncate_keeps_short_and_cuts_long():
    short = "x" * MAX_OUTPUT_CHARS
    assert truncate(short) == short
    long = "y" * (MAX_OUTPUT_CHARS + 1)
    cut = truncate(long)
    assert cut.startswith("y" * MAX_OUTPUT_CHARS)
    assert cut.endswith(f"… ({len(long)} chars)")


def test_compact_is_single_line_json_round_trip():
    value = {"b": [1, 2], "a": {"c": "d"}}
    text = compact(value)
    assert "\n" not in text and " " not in text
    assert json.loads(text) == value


def test_compact_bounds_length():
    value = ["z" * 1000]
    assert len(compact(value)) < 1000
    assert "chars)" in compact(value)