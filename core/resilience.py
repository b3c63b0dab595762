"""
Resilience Management System

Wraps every collaborator call with:
- A bounded per-call timeout
- Exponential backoff retry, restricted to idempotent reads
- Per-operation retry statistics

Author: AI System
Version: 2.0
"""

import asyncio
import time
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional
from dataclasses import dataclass, field

from config import Config
from error_handler import ErrorClassifier, ErrorClassification
from logger import get_logger

logger = get_logger(__name__)


class CollaboratorTimeout(Exception):
    """Raised when a collaborator call exceeds its time budget"""

    def __init__(self, operation: str, timeout: float):
        super().__init__(f"{operation} timed out after {timeout:.1f}s")
        self.operation = operation
        self.timeout = timeout


@dataclass
class RetryAttempt:
    """Records a single attempt"""
    attempt_number: int
    timestamp: float
    error: Optional[str] = None
    success: bool = False
    delay_seconds: float = 0.0


@dataclass
class RetryContext:
    """Tracks retry state for one call"""
    operation: str
    idempotent: bool
    max_attempts: int
    attempts: List[RetryAttempt] = field(default_factory=list)
    first_attempt_time: float = field(default_factory=time.time)
    last_classification: Optional[ErrorClassification] = None

    @property
    def current_attempt(self) -> int:
        """Get current attempt number (1-indexed)"""
        return len(self.attempts) + 1

    @property
    def should_retry(self) -> bool:
        """Check if another attempt is allowed"""
        if not self.attempts:
            return True

        if not self.idempotent:
            return False

        if len(self.attempts) >= self.max_attempts:
            return False

        if self.last_classification and not self.last_classification.is_retryable:
            return False

        return True

    @property
    def total_elapsed_time(self) -> float:
        return time.time() - self.first_attempt_time


class RetryManager:
    """
    Timeout and retry management for collaborator calls.

    Writes (create/assign/update/delete) run exactly once; only reads
    marked idempotent are retried.
    """

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        backoff_factor: Optional[float] = None,
        timeout: Optional[float] = None,
        jitter: bool = True
    ):
        """
        Initialize retry manager.

        Args:
            max_attempts: Maximum attempts per idempotent call
            base_delay: Initial delay in seconds
            max_delay: Maximum delay in seconds
            backoff_factor: Multiplier for exponential backoff
            timeout: Per-attempt timeout in seconds
            jitter: Add randomness to delays
        """
        self.max_attempts = max_attempts if max_attempts is not None else Config.MAX_RETRY_ATTEMPTS
        self.base_delay = base_delay if base_delay is not None else Config.INITIAL_RETRY_DELAY
        self.max_delay = max_delay if max_delay is not None else Config.MAX_RETRY_DELAY
        self.backoff_factor = backoff_factor if backoff_factor is not None else Config.RETRY_BACKOFF_FACTOR
        self.timeout = timeout if timeout is not None else Config.COLLABORATOR_TIMEOUT
        self.jitter = jitter

        self.stats: Dict[str, Dict[str, int]] = {}

    def calculate_delay(
        self,
        attempt_number: int,
        classification: Optional[ErrorClassification] = None
    ) -> float:
        """
        Calculate retry delay with exponential backoff and jitter.

        Args:
            attempt_number: Attempt that just failed (1-indexed)
            classification: Error classification (may specify delay)

        Returns:
            Delay in seconds
        """
        if classification and classification.retry_delay_seconds > 0:
            base = max(self.base_delay, classification.retry_delay_seconds)
        else:
            base = self.base_delay

        delay = base * (self.backoff_factor ** (attempt_number - 1))
        delay = min(delay, self.max_delay)

        if self.jitter and delay > 0:
            jitter_amount = delay * 0.2
            delay = max(0.0, delay + random.uniform(-jitter_amount, jitter_amount))

        return delay

    async def execute(
        self,
        operation: str,
        call: Callable[[], Awaitable[Any]],
        idempotent: bool = False,
        timeout: Optional[float] = None
    ) -> Any:
        """
        Run a collaborator call under a timeout, retrying idempotent reads.

        Args:
            operation: Name used in logs and statistics ("bugs.list")
            call: Zero-argument callable returning a fresh awaitable
            idempotent: Whether the call may be repeated safely
            timeout: Override of the per-attempt timeout

        Returns:
            Result from the call

        Raises:
            The last exception once attempts are exhausted
        """
        budget = timeout if timeout is not None else self.timeout
        context = RetryContext(
            operation=operation,
            idempotent=idempotent,
            max_attempts=max(1, self.max_attempts)
        )
        stats = self.stats.setdefault(operation, {'calls': 0, 'attempts': 0, 'failures': 0})
        stats['calls'] += 1

        while True:
            attempt = context.current_attempt
            stats['attempts'] += 1

            try:
                result = await asyncio.wait_for(call(), timeout=budget)
            except asyncio.TimeoutError:
                error = CollaboratorTimeout(operation, budget)
            except Exception as e:
                error = e
            else:
                context.attempts.append(RetryAttempt(
                    attempt_number=attempt,
                    timestamp=time.time(),
                    success=True
                ))
                return result

            error_msg = str(error) or type(error).__name__
            classification = ErrorClassifier.classify(error_msg)
            context.last_classification = classification

            delay = self.calculate_delay(attempt, classification)
            context.attempts.append(RetryAttempt(
                attempt_number=attempt,
                timestamp=time.time(),
                error=error_msg,
                delay_seconds=delay
            ))

            if not context.should_retry:
                stats['failures'] += 1
                logger.warning(
                    f"{operation} failed after {len(context.attempts)} attempt(s) in "
                    f"{context.total_elapsed_time:.2f}s ({classification.category.value}): {error_msg}"
                )
                raise error

            logger.info(
                f"{operation} attempt {attempt} failed ({classification.category.value}), "
                f"retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)

    def get_statistics(self) -> Dict[str, Any]:
        """Get retry statistics for monitoring"""
        total_calls = sum(s['calls'] for s in self.stats.values())
        total_attempts = sum(s['attempts'] for s in self.stats.values())
        failed = sum(s['failures'] for s in self.stats.values())

        return {
            'total_calls': total_calls,
            'total_attempts': total_attempts,
            'failed': failed,
            'retries': total_attempts - total_calls,
            'by_operation': {name: dict(s) for name, s in self.stats.items()},
        }
