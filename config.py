"""
Production configuration for the command interpreter.
All tunable values live here so the pipeline never hardcodes them.
"""

import os
from typing import Dict, Any

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Central configuration for all interpreter components."""

    # Collaborator calls (seconds)
    COLLABORATOR_TIMEOUT = float(os.getenv('COLLABORATOR_TIMEOUT', '10.0'))

    # Retry Configuration (read-only collaborators only)
    MAX_RETRY_ATTEMPTS = int(os.getenv('MAX_RETRIES', '3'))
    RETRY_BACKOFF_FACTOR = float(os.getenv('RETRY_BACKOFF', '2.0'))
    INITIAL_RETRY_DELAY = float(os.getenv('INITIAL_RETRY_DELAY', '0.5'))
    MAX_RETRY_DELAY = float(os.getenv('MAX_RETRY_DELAY', '5.0'))

    # Input Validation
    MAX_MESSAGE_LENGTH = int(os.getenv('MAX_MESSAGE_LENGTH', '10000'))

    # Classification
    CLASSIFICATION_THRESHOLD = 0.3
    FALLBACK_CONFIDENCE = 0.5
    POSITIVE_SENTIMENT_THRESHOLD = 0.1
    NEGATIVE_SENTIMENT_THRESHOLD = -0.1

    # Session buffers
    RECENT_BUGS_LIMIT = 10
    RECENT_ENTITIES_LIMIT = 10
    QUERY_HISTORY_LIMIT = 20
    CONVERSATION_HISTORY_LIMIT = 50

    # Responses
    SUGGESTION_LIMIT = 10

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    VERBOSE = os.getenv('VERBOSE', 'false').lower() == 'true'

    @classmethod
    def get_config(cls) -> Dict[str, Any]:
        """Return all config values as a dictionary."""
        return {
            'collaborator_timeout': cls.COLLABORATOR_TIMEOUT,
            'max_retry_attempts': cls.MAX_RETRY_ATTEMPTS,
            'retry_backoff_factor': cls.RETRY_BACKOFF_FACTOR,
            'initial_retry_delay': cls.INITIAL_RETRY_DELAY,
            'max_message_length': cls.MAX_MESSAGE_LENGTH,
            'classification_threshold': cls.CLASSIFICATION_THRESHOLD,
            'recent_bugs_limit': cls.RECENT_BUGS_LIMIT,
            'query_history_limit': cls.QUERY_HISTORY_LIMIT,
            'conversation_history_limit': cls.CONVERSATION_HISTORY_LIMIT,
            'log_level': cls.LOG_LEVEL,
            'verbose': cls.VERBOSE,
        }
