"""LLM provider adapters: Anthropic, OpenAI-compatible and Ollama."""

from reelcritic.providers.llm.anthropic_provider import AnthropicLLMProvider
from reelcritic.providers.llm.ollama_provider import OllamaLLMProvider
from reelcritic.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OllamaLLMProvider", "OpenAILLMProvider"]
