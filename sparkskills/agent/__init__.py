"""Agent core module."""

from sparkskills.agent.loop import AgentLoop

__all__ = ["AgentLoop"]
