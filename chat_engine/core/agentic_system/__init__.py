"""
Agentic system: tools, provider access and the conversation loop.
"""

from chat_engine.core.agentic_system.turn_executor import TurnExecutor, TurnResult

__all__ = ["TurnExecutor", "TurnResult"]
