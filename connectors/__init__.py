"""Collaborator contracts and the in-memory reference backend"""

from .base_operations import (
    ActionResult,
    BaseOperations,
    BugOperations,
    TeamOperations,
    UserOperations,
    CommentOperations,
    FileOperations,
    Collaborators
)

from .memory_backend import InMemoryBackend, calculate_bug_analytics

__all__ = [
    'ActionResult',
    'BaseOperations',
    'BugOperations',
    'TeamOperations',
    'UserOperations',
    'CommentOperations',
    'FileOperations',
    'Collaborators',
    'InMemoryBackend',
    'calculate_bug_analytics',
]
