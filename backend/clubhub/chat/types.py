from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

ChatOutcome = Literal["direct", "tools", "fallback", "timeout", "error"]


class ChatPhase(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    AWAITING_FOLLOW_UP = "awaiting_follow_up"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ToolCall:
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    name: str
    content: Any = None

    def to_part(self) -> dict[str, Any]:
        return {
            "functionResponse": {
                "name": self.name,
                "response": {"name": self.name, "content": self.content},
            }
        }


@dataclass(frozen=True)
class ChatReply:
    text: str
    outcome: ChatOutcome
    tools: tuple[str, ...] = ()
