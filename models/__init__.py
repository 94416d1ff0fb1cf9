"""
Models package exports.
"""
from models.api_models import Message, TurnRequest, TurnMetadata, TurnResult, SuggestionResponse
from models.chat_models import (
    EnrichedPrompt,
    EnrichmentResult,
    MemoryOptions,
    SamplingOptions,
    GenerationResult,
    TurnStage,
    TurnTrace
)

__all__ = [
    'Message',
    'TurnRequest',
    'TurnMetadata',
    'TurnResult',
    'SuggestionResponse',
    'EnrichedPrompt',
    'EnrichmentResult',
    'MemoryOptions',
    'SamplingOptions',
    'GenerationResult',
    'TurnStage',
    'TurnTrace'
]
