# jobflow

Event-sourced building blocks for supervising multi-agent workflow jobs.

A *job* runs a *workflow*. A workflow is a set of agents with a start agent and
transitions from one agent to the next. An agent ends its turn in one of two
ways: with plain text, or by calling the synthesized `conclude` tool. The
`conclude` tool either delivers a structured output or asks the user a question.

All state in jobflow is a pure fold over a log of domain events. That covers the
supervisor's job registry, each job, each workflow and each agent conversation.
Any of them can be rebuilt at any time by replaying the events from a journal.

## Installation

```
pip install .
```

With the test dependencies:

```
pip install ".[test]"
```

## Modules

- `jobflow.messages`
  - `Message` and its content parts: `TextPart`, `ToolCallPart`, `ToolResultPart` and `ThinkingPart`.
  - `Role` and `Usage`.
  - The streaming agent events, such as `TextChunkEvent`, `MessageCompleteEvent`, `ToolCompleteEvent` and `RunCompleteEvent`.
  - `Message` and `Usage` convert to and from plain dicts.
- `jobflow.definitions`
  - `WorkflowDefinition`, `WorkflowAgentDef` and `WorkflowTransition`.
  - `WorkflowDefinition.from_dict` and `to_dict` load and dump a definition.
  - `WorkflowDefinition.agent(name)` finds an agent by name.
- `jobflow.expr`
  - `evaluate(expression, variables)` evaluates transition conditions such as `output.score > 80`.
  - It supports field access and indexing, arithmetic, comparisons, `&&`, `||` and `!`, and the functions `len`, `is_empty`, `min`, `max` and `array`.
  - On failure it raises `ExpressionError`.
- `jobflow.context`
  - The `Toolbox` interface and `ToolSpec`.
  - `FilteredToolbox`, which applies an allowlist.
  - `AgentToolbox`, which advertises the `conclude` tool but refuses to execute it.
  - `conclude_tool_spec`, which builds the `conclude` tool's input schema.
  - `build_agent_toolbox`, which wraps a base toolbox for a `WorkflowAgentDef`.
  - Errors are raised as `ExecutionFailed` or `InvalidInput`. Both subclass `ToolCallError`.
- `jobflow.agent_state`
  - `AgentParams`.
  - The agent domain events: `InputMessage`, `MessageComplete`, `ToolComplete`, `RunComplete` and `RunCancelled`.
  - `AgentState` and `apply_agent_event`.
  - `encode_agent_event` and `decode_agent_event`, which convert events to and from JSON.
  - `agent_persistence_id`.
- `jobflow.agent`
  - `interpret_conclusion` turns a `conclude` payload into an `OutputConclusion` or an `AskConclusion`.
  - `sanitize_for_resume` appends error results for unanswered tool calls in the last assistant message.
  - `coarse_event` maps a streaming event to the domain event to persist.
  - `find_tool_call_id` finds a tool call by tool name.
  - `retry_backoff` gives the delay before a retry.
- `jobflow.workflow`
  - The `WorkflowStatus` machine.
  - The workflow domain events and `WorkflowState`, folded by `apply_workflow_event`.
  - The live notification types.
  - `find_next_transition` routes an output to the next agent.
  - `output_as_input` turns one agent's output into the next agent's input.
  - `encode_workflow_event` and `decode_workflow_event` convert events to and from JSON.
  - `workflow_persistence_id`.
- `jobflow.job_events`
  - `JobStatus` and `JobEventFrame`.
  - The job domain events, and `JobState`, folded by `apply_job_event`.
  - `job_persistence_id`.
- `jobflow.journal`
  - `InMemoryJournal`, a thread-safe, append-only event store.
  - It numbers the events of each persistence id from 1.
  - It keeps the latest snapshot for each persistence id.
- `jobflow.history`
  - `render_history(journal, job_id)` replays a job's workflow journal, and the journal of each of its agent sessions, into `JobEventFrame` log lines.
  - `render_message`, `compact` and `truncate` help it. Tool output is capped at 500 characters.
- `jobflow.supervisor`
  - The job registry: `JobSpec`, `JobRecord`, `JobSummary` and `SupervisorState`.
  - The registry events `JobSubmitted`, `JobStatusChanged` and `JobRemoved`, folded by `apply_supervisor_event`.
  - `summarize` and `is_terminal`.
  - `check_removable`, which raises `JobRegistryError` for unknown or still-active jobs.
  - `recoverable_jobs`.

## Examples

This example routes an agent's output to the next agent:

```python
from jobflow.definitions import WorkflowDefinition
from jobflow.workflow import find_next_transition

definition = WorkflowDefinition.from_dict({
    "start": "researcher",
    "agents": [
        {"name": "researcher", "model": "m",
         "transitions": [{"to": "writer", "condition": "output.score > 80"}]},
        {"name": "writer", "model": "m"},
    ],
})
transitions = definition.agent("researcher").transitions
print(find_next_transition(transitions, {"score": 95}))
# ('writer', 'output.score > 80')
```

This example keeps a registry by folding events:

```python
from pathlib import Path
from jobflow.definitions import WorkflowDefinition
from jobflow.job_events import JobStatus
from jobflow.supervisor import (
    JobSpec, JobStatusChanged, JobSubmitted, SupervisorState,
    apply_supervisor_event, check_removable,
)

spec = JobSpec(WorkflowDefinition(start="a"), "wf", Path("/tmp"), "go")
state = apply_supervisor_event(SupervisorState(), JobSubmitted("j1", spec, 0))
state = apply_supervisor_event(state, JobStatusChanged("j1", JobStatus.FINISHED))
check_removable(state, "j1")  # a finished job may be removed
```

This example replays a job's history from a journal:

```python
from jobflow.journal import InMemoryJournal
from jobflow.history import render_history

journal = InMemoryJournal()
for frame in render_history(journal, "job-id"):
    print(frame.text, end="")
```

## What jobflow does not do

jobflow provides the state machines, serialization and rendering. It does not include:

- An actor runtime that runs jobs live.
- Any LLM provider client.
- A sandbox for running tools.
- Durable on-disk storage. The only journal is in memory.
- A command-line tool or daemon.

You supply these yourself. Drive them with the fold functions and decision helpers above.

## Running the tests

```
pytest
```