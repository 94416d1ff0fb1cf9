from models.api_models import Message, TurnRequest


def make_turn(*contents, **kwargs):
    """
    Build a TurnRequest from alternating user/assistant contents.
    The first content is a user message, so an odd count ends on the user.
    """
    roles = ["user", "assistant"]
    messages = [Message(role=roles[i % 2], content=content) for i, content in enumerate(contents)]
    return TurnRequest(messages=messages, **kwargs)


def assert_failed_turn(result, error=None):
    """Assert a failed TurnResult that still carries complete metadata."""
    assert result.success is False, f"Expected a failed turn, got {result}"
    assert result.message is None
    assert result.error, "Failed turn must carry an error message"
    if error is not None:
        assert result.error == error
    assert result.metadata.memory_used is False
    assert result.metadata.context_length == 0
    assert result.metadata.response_time_ms >= 0
    assert result.metadata.model
