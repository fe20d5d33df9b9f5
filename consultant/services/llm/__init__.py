from consultant.services.llm.base import AssistantClient, LLMResponse, Run, ThreadMessage
from consultant.services.llm.openai_provider import OpenAIAssistantClient

__all__ = ["AssistantClient", "LLMResponse", "OpenAIAssistantClient", "Run", "ThreadMessage"]
