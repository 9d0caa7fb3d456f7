"""
Backend collaborators.

- Backend: protocol every persistence/identity backend implements
- MemoryStore: in-process reference implementation
"""

from .base import Backend, BackendAuthFailure, Unsubscribe
from .memory import MemoryStore

__all__ = [
    'Backend',
    'BackendAuthFailure',
    'MemoryStore',
    'Unsubscribe',
]
