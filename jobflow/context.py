"""Agent toolboxes: tool specs, the synthesized `conclude` tool and allowlist filtering."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from jobflow.definitions import WorkflowAgentDef

CONCLUDE_TOOL = "conclude"

_CONCLUDE_DESCRIPTION = (
    "Finish your turn: deliver your final structured output, or ask the user a question."
)


@dataclass(frozen=True)
class ToolSpec:
    """A tool as advertised to the model."""

    name: str
    description: str
    input_schema: Any


class ToolCallError(Exception):
    """A tool call could not be carried out."""


class ExecutionFailed(ToolCallError):
    """The tool ran (or was asked to run) and failed."""


class InvalidInput(ToolCallError):
    """The call was rejected before execution."""


class Toolbox(ABC):
    """A set of tools an agent may call."""

    @abstractmethod
    def specs(self) -> list[ToolSpec]:
        """The tools on offer."""

    @abstractmethod
    async def execute(self, name: str, tool_input: Any) -> Any:
        """Run the named tool; raise ToolCallError on failure."""


def conclude_tool_spec(output_schema: Optional[Any], allow_ask: bool) -> Optional[ToolSpec]:
    """The `conclude` tool for an agent, or None when it neither outputs nor asks."""
    if output_schema is None and not allow_ask:
        return None
    if output_schema is not None and not allow_ask:
        input_schema = copy.deepcopy(output_schema)
    elif output_schema is None:
        input_schema = _ask_schema()
    else:
        input_schema = _both_schema(output_schema)
    return ToolSpec(name=CONCLUDE_TOOL, description=_CONCLUDE_DESCRIPTION, input_schema=input_schema)


def _choices_schema(description: str) -> dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


def _ask_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "required": ["question"],
        "properties": {
            "question": {"type": "string", "description": "The question to put to the user."},
            "choices": _choices_schema("Optional suggested answers."),
        },
    }


def _both_schema(output_schema: Any) -> dict[str, Any]:
    return {
        "type": "object",
        "required": ["kind"],
        "properties": {
            "kind": {
                "type": "string",
                "enum": ["submit", "ask"],
                "description": "submit to deliver final output; ask to pause for user input",
            },
            "output": copy.deepcopy(output_schema),
            "question": {"type": "string", "description": "Required when kind=ask."},
            "choices": _choices_schema("Optional when kind=ask."),
        },
    }


class AgentToolbox(Toolbox):
    """A base toolbox plus the optional `conclude` tool, advertised but never executed."""

    def __init__(self, base: Toolbox, conclude: Optional[ToolSpec]) -> None:
        self.base = base
        self.conclude = conclude

    def specs(self) -> list[ToolSpec]:
        specs = list(self.base.specs())
        if self.conclude is not None:
            specs.append(self.conclude)
        return specs

    async def execute(self, name: str, tool_input: Any) -> Any:
        if self.conclude is not None and name == self.conclude.name:
            raise ExecutionFailed("the conclude tool is terminal and is not executed")
        return await self.base.execute(name, tool_input)


class FilteredToolbox(Toolbox):
    """Exposes only an allowlisted subset of another toolbox's tools."""

    def __init__(self, inner: Toolbox, allowed: Iterable[str]) -> None:
        self.inner = inner
        self.allowed = frozenset(allowed)

    def specs(self) -> list[ToolSpec]:
        return [s for s in self.inner.specs() if s.name in self.allowed]

    async def execute(self, name: str, tool_input: Any) -> Any:
        if name not in self.allowed:
            raise InvalidInput(f"tool '{name}' is not permitted for this agent")
        return await self.inner.execute(name, tool_input)


def build_agent_toolbox(agent_def: WorkflowAgentDef, base: Toolbox) -> Toolbox:
    """Narrow `base` to the agent's allowlist and layer on its `conclude` tool."""
    narrowed = base if agent_def.allowed_tools is None else FilteredToolbox(base, agent_def.allowed_tools)
    conclude = conclude_tool_spec(agent_def.output_schema, agent_def.allow_ask_user)
    return AgentToolbox(narrowed, conclude)