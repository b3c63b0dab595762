"""
Shared fixtures for the interpreter test suite.

The project uses a flat layout (`config`, `intelligence`, `orchestration`, ...
at the repository root), so the root is put on sys.path before collection.
"""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from connectors.memory_backend import InMemoryBackend
from core.resilience import RetryManager
from intelligence.context import ConversationContext, InMemorySessionStore
from orchestration.interpreter import Interpreter


@pytest.fixture
def backend():
    """Demo workspace: Alice (manager) in one team with 3 bugs, plus John, Priya, Marco"""
    backend = InMemoryBackend()
    backend.seed_demo()
    return backend


@pytest.fixture
def alice(backend):
    return backend.find_user('alice@example.com')


@pytest.fixture
def john(backend):
    return backend.find_user('john@example.com')


@pytest.fixture
def collaborators(backend):
    return backend.collaborators()


@pytest.fixture
def retry_manager():
    return RetryManager(base_delay=0, max_delay=0, jitter=False)


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def context(alice):
    return ConversationContext(user_id=alice['id'])


@pytest.fixture
def interpreter(collaborators, store, retry_manager):
    return Interpreter(collaborators, store=store, retry_manager=retry_manager)
