"""
LLM Review Engine

This module provides the model service client, review prompt construction
and recovery parsing of generative model replies.
"""

from .prompts import PromptBuilder
from .client import ModelClient
from .recovery import ResponseParser

__all__ = ['PromptBuilder', 'ModelClient', 'ResponseParser']
