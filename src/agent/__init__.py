"""Conversation logic for LLM orchestration.

Answers questions with retrieved document context and a web search tool.

Responsibilities:
    - Bounded tool-calling rounds over a streaming OpenAI chat completion
    - Reconstruction of streamed tool calls
    - Web search execution and result formatting
    - The RAGService facade used by the HTTP layer
"""

from src.agent.chat_agent import ConversationEngine, ConversationOutcome, EngineState
from src.agent.config import AgentConfig, get_agent_config
from src.agent.service import RAGService

__all__ = [
    "AgentConfig",
    "ConversationEngine",
    "ConversationOutcome",
    "EngineState",
    "RAGService",
    "get_agent_config",
]
