"""Persistence for tutor state and chat transcripts."""

from .models import Base, ChatMessageRecord, TutorSessionRecord
from .state_store import SqlStudentStateStore

__all__ = [
    "Base",
    "ChatMessageRecord",
    "SqlStudentStateStore",
    "TutorSessionRecord",
]
