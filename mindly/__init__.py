"""
Mindly: adaptive exam tutor.

Classifies each student message, scores answers, tracks per-concept mastery
and renders a mastery-aware system prompt for the chat model.
"""

__version__ = "0.3.0"
