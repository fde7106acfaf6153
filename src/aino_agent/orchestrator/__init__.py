"""Agent lifecycle module coordinating the Aino.io agent."""

from .agent import AgentState, AinoAgent, create_agent

__all__ = ["AinoAgent", "AgentState", "create_agent"]
