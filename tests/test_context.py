import pytest

from jobflow.context import (
    CONCLUDE_TOOL,
    AgentToolbox,
    ExecutionFailed,
    FilteredToolbox,
    InvalidInput,
    Toolbox,
    ToolSpec,
    build_agent_toolbox,
    conclude_tool_spec,
)
from jobflow.definitions import WorkflowAgentDef


class _StubToolbox(Toolbox):
    def specs(self):
        return [
            ToolSpec(name="bash", description="run a command", input_schema={"type": "object"}),
            ToolSpec(name="read_file", description="read a file", input_schema={"type": "object"}),
        ]

    async def execute(self, name, tool_input):
        return {"tool": name, "input": tool_input}


def _def(allowed=None, output=None, ask=False):
    return WorkflowAgentDef(
        name="a",
        model="m",
        output_schema=output,
        allow_ask_user=ask,
        allowed_tools=allowed,
    )


def test_conclude_not_registered_without_output_or_ask():
    assert conclude_tool_spec(None, False) is None


def test_conclude_output_only_uses_output_schema_as_input():
    out = {"type": "object", "properties": {"answer": {"type": "number"}}}
    spec = conclude_tool_spec(out, False)
    assert spec.input_schema == out
    assert spec.name == "conclude"


def test_conclude_ask_only_requires_question():
    spec = conclude_tool_spec(None, True)
    assert spec.input_schema["required"][0] == "question"


def test_conclude_both_is_kind_tagged():
    out = {"type": "object"}
    spec = conclude_tool_spec(out, True)
    assert spec.input_schema["properties"]["kind"]["enum"][0] == "submit"
    assert spec.input_schema["properties"]["output"] == out


def test_toolbox_includes_conclude_and_filters_runtime_tools():
    tb = build_agent_toolbox(_def(allowed=["bash"], output={"type": "object"}), _StubToolbox())
    names = [s.name for s in tb.specs()]
    assert "bash" in names
    assert CONCLUDE_TOOL in names
    assert "read_file" not in names


def test_toolbox_without_allowlist_keeps_all_tools():
    tb = build_agent_toolbox(_def(), _StubToolbox())
    assert [s.name for s in tb.specs()] == ["bash", "read_file"]


@pytest.mark.asyncio
async def test_conclude_tool_is_not_executable():
    tb = build_agent_toolbox(_def(output={"type": "object"}), _StubToolbox())
    with pytest.raises(ExecutionFailed):
        await tb.execute(CONCLUDE_TOOL, {})


@pytest.mark.asyncio
async def test_filtered_toolbox_rejects_unlisted_tool():
    tb = FilteredToolbox(_StubToolbox(), ["bash"])
    with pytest.raises(InvalidInput):
        await tb.execute("read_file", {})


@pytest.mark.asyncio
async def test_filtered_toolbox_delegates_allowed_tool():
    tb = FilteredToolbox(_StubToolbox(), ["bash"])
    assert await tb.execute("bash", {"cmd": "ls"}) == {"tool": "bash", "input": {"cmd": "ls"}}


@pytest.mark.asyncio
async def test_agent_toolbox_delegates_other_tools():
    tb = AgentToolbox(_StubToolbox(), conclude_tool_spec(None, True))
    assert await tb.execute("read_file", {"path": "x"}) == {"tool": "read_file", "input": {"path": "x"}}
    assert [s.name for s in tb.specs()][-1] == CONCLUDE_TOOL