"""Gemini-backed chat assistant that answers with live club data."""

from .orchestrator import ChatOrchestrator
from .tools import ToolRegistry
from .types import ChatReply

__all__ = ["ChatOrchestrator", "ChatReply", "ToolRegistry"]
