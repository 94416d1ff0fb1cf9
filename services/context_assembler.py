"""
Builds the bounded prompt context for a turn from its message history.
"""
from models.api_models import Message, TurnRequest
from config import Config
from utils.constants import ErrorMessages
from utils.errors import InvalidRequest


class ConversationContextAssembler:
    """Extracts the final user prompt and the recent history window."""

    @staticmethod
    def validate(request: TurnRequest) -> Message:
        """Return the final user message, or raise InvalidRequest."""
        if not request.messages:
            raise InvalidRequest(ErrorMessages.INVALID_MESSAGE_FORMAT)

        last_message = request.messages[-1]
        if last_message.role != "user":
            raise InvalidRequest(ErrorMessages.INVALID_MESSAGE_FORMAT)

        return last_message

    @staticmethod
    def assemble(request: TurnRequest, window_size: int = Config.HISTORY_WINDOW_SIZE) -> tuple[str, tuple[Message, ...]]:
        """
        Produce the base prompt and history window for a turn.

        Args:
            request: Incoming turn request
            window_size: Number of most recent messages to keep

        Returns:
            Tuple of (base_prompt, history_window), the window in original order
        """
        user_message = ConversationContextAssembler.validate(request)
        history_window = tuple(request.messages[-window_size:])
        return user_message.content, history_window
