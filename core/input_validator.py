"""
Input validation for inbound chat messages.
Rejects malformed messages before they reach the pipeline.
"""

from typing import Any, Tuple, Optional
from config import Config


class InputValidator:
    """Validates inbound user messages."""

    @staticmethod
    def validate_message(message: Any) -> Tuple[bool, Optional[str]]:
        """
        Validate a message string.
        Returns: (is_valid, error_message)
        """
        if message is None:
            return False, "Please type a message so I can help you."

        if not isinstance(message, str):
            return False, "Messages must be plain text."

        if not message.strip():
            return False, "Your message is empty. Tell me what you'd like to do."

        if len(message) > Config.MAX_MESSAGE_LENGTH:
            return False, f"Your message is too long. Please keep it under {Config.MAX_MESSAGE_LENGTH} characters."

        # Check for null bytes
        if '\x00' in message:
            return False, "Your message contains characters I can't read."

        return True, None

    @staticmethod
    def validate_user_id(user_id: Any) -> Tuple[bool, Optional[str]]:
        """Validate the opaque caller id."""
        if user_id is None or (isinstance(user_id, str) and not user_id.strip()):
            return False, "I couldn't tell who is asking. Please sign in again."
        return True, None
