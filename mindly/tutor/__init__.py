"""
Adaptive tutoring decision engine.

Components:
- classifier: message type from pattern rules with a generative fallback
- assessor: rubric scoring of answers to the pending question
- planner: mastery state machine choosing the pedagogical action
- prompt_compiler: system prompt rendering for the chosen action
- pipeline: the four stages wired together per chat message
"""

from .assessor import AnswerAssessor
from .classifier import MessageClassifier
from .extractor import ExtractedQuestion, QuestionExtractor, apply_extracted_question
from .pipeline import TurnResult, TutorPipeline, build_messages
from .planner import MasteryPlanner, PlanResult
from .prompt_compiler import PromptCompiler
from .types import (
    AssessmentResult,
    ConfidenceCalibration,
    MasteryEntry,
    MasteryLevel,
    MessageType,
    Misconception,
    SessionPhase,
    StudentContext,
    StudentState,
    TutorAction,
    default_student_state,
)

__all__ = [
    "AnswerAssessor",
    "AssessmentResult",
    "ConfidenceCalibration",
    "ExtractedQuestion",
    "MasteryEntry",
    "MasteryLevel",
    "MasteryPlanner",
    "MessageClassifier",
    "MessageType",
    "Misconception",
    "PlanResult",
    "PromptCompiler",
    "QuestionExtractor",
    "SessionPhase",
    "StudentContext",
    "StudentState",
    "TurnResult",
    "TutorAction",
    "TutorPipeline",
    "apply_extracted_question",
    "build_messages",
    "default_student_state",
]
