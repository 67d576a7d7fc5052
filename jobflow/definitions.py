"""Workflow definitions: agents and the transitions between them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class WorkflowTransition:
    """An edge to another agent, taken when `condition` holds (or always if None)."""

    to: str
    condition: Optional[str] = None


@dataclass
class WorkflowAgentDef:
    """One agent in a workflow."""

    name: str
    model: str
    system_prompt: Optional[str] = None
    output_schema: Optional[Any] = None
    allow_ask_user: bool = False
    transitions: Optional[list[WorkflowTransition]] = None
    max_iterations: Optional[int] = None
    max_retries: Optional[int] = None
    allowed_tools: Optional[list[str]] = None


@dataclass
class WorkflowDefinition:
    """A set of agents plus the name of the one to start at."""

    start: str
    agents: list[WorkflowAgentDef] = field(default_factory=list)

    def agent(self, name: str) -> Optional[WorkflowAgentDef]:
        """The first agent with this name, or None."""
        return next((a for a in self.agents if a.name == name), None)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowDefinition:
        try:
            return cls(
                start=data["start"],
                agents=[_agent_from_dict(a) for a in data.get("agents", [])],
            )
        except KeyError as exc:
            raise ValueError(f"workflow definition missing field {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "agents": [_agent_to_dict(a) for a in self.agents]}


def _agent_from_dict(data: dict[str, Any]) -> WorkflowAgentDef:
    transitions = data.get("transitions")
    allowed = data.get("allowed_tools")
    return WorkflowAgentDef(
        name=data["name"],
        model=data["model"],
        system_prompt=data.get("system_prompt"),
        output_schema=data.get("output_schema"),
        allow_ask_user=bool(data.get("allow_ask_user", False)),
        transitions=(
            None
            if transitions is None
            else [WorkflowTransition(to=t["to"], condition=t.get("condition")) for t in transitions]
        ),
        max_iterations=data.get("max_iterations"),
        max_retries=data.get("max_retries"),
        allowed_tools=None if allowed is None else list(allowed),
    )


def _agent_to_dict(agent: WorkflowAgentDef) -> dict[str, Any]:
    return {
        "name": agent.name,
        "system_prompt": agent.system_prompt,
        "model": agent.model,
        "output_schema": agent.output_schema,
        "allow_ask_user": agent.allow_ask_user,
        "transitions": (
            None
            if agent.transitions is None
            else [{"to": t.to, "condition": t.condition} for t in agent.transitions]
        ),
        "max_iterations": agent.max_iterations,
        "max_retries": agent.max_retries,
        "allowed_tools": None if agent.allowed_tools is None else list(agent.allowed_tools),
    }