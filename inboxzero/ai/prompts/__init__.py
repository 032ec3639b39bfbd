"""
Shared AI Prompt Templates

Prompt templates shared by every classifier provider, so that Claude and
Grok are asked for the same JSON shape.
"""

from .classify_email import build_classify_email_prompt, build_profile_context

__all__ = [
    'build_classify_email_prompt',
    'build_profile_context',
]
