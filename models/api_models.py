"""
Pydantic data models for API requests and responses.
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class Message(BaseModel):
    """Chat message model."""
    role: Literal["user", "assistant", "system"]
    content: str
    id: Optional[str] = None


class TurnRequest(BaseModel):
    """One chat turn: the conversation so far, ending with the user's message."""
    messages: List[Message] = Field(default_factory=list)
    model: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(None, gt=0)
    memory_enabled: Optional[bool] = True


class TurnMetadata(BaseModel):
    """Metadata attached to every turn result, successful or not."""
    model: str
    response_time_ms: int = Field(..., ge=0)
    memory_used: bool = False
    context_length: int = Field(0, ge=0)


class TurnResult(BaseModel):
    """Uniform result envelope returned for every turn."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    metadata: TurnMetadata


class SuggestionResponse(BaseModel):
    """Suggestions published for a session."""
    session: str
    suggestions: List[str]
