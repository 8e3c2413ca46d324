"""Schemas for the tool-driven case agent."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

ToolName = Literal["update_profile", "get_latest_analysis", "update_analysis", "update_threshold"]


class ToolCall(BaseModel):
    name: ToolName
    arguments: Dict[str, Any] = Field(default_factory=dict)


class AgentStep(BaseModel):
    """One model turn: optional tool calls plus any text to show the user."""
    message: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)


class ToolResult(BaseModel):
    name: str
    success: bool
    result: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None


class AgentMessage(BaseModel):
    role: Literal["user", "assistant", "tool"]
    content: str


class AgentRunResult(BaseModel):
    final_message: str
    steps: int
    tool_results: List[ToolResult] = Field(default_factory=list)
    messages: List[AgentMessage] = Field(default_factory=list)
    exhausted: bool = False
