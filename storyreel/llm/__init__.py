"""
Storyreel LLM Module

Client for the hosted language model used by every pipeline stage.
"""

from .anthropic_client import (
    AnthropicClient,
    HistoryRecorder,
    LLMCaller,
    LLMResponse,
)

__all__ = [
    'AnthropicClient',
    'HistoryRecorder',
    'LLMCaller',
    'LLMResponse',
]
