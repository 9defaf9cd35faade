"""Cognition stack for Townsfolk villagers.

Houses planning (static and reasoned), the action executor, reflection and
dialogue. Only the static planner and executor are required; every
reasoner-backed stage degrades to a fixed fallback when reasoning fails.
"""

from .context import DialogueTurn, PromptContext, build_prompt_context, format_conversation_history
from .prompts import PromptLibrary, PromptTemplate, DEFAULT_PROMPTS
from .renderers import render_prompt, RenderedPrompt
from .planner import (
    DEFAULT_LOCATION,
    LOCATIONS,
    PlannedAction,
    Planner,
    StaticPlanner,
    jitter,
    resolve_location,
)
from .llm import (
    AmbientExchange,
    LLMPlanner,
    LLMReflectionEngine,
    LLMSocialAnalyzer,
    SocialAnalysis,
    confused_plan,
)
from .reflection import REFLECTION_IMPORTANCE, ReflectionEngine, apply_reflection, reflect
from .dialogue import generate_ambient_dialogue, generate_greeting, stream_dialogue
from .executor import advance_agent
from .runtime import AgentCognition, AgentCognitionMap, build_default_cognition, request_plan

__all__ = [
    "DialogueTurn",
    "PromptContext",
    "build_prompt_context",
    "format_conversation_history",
    "PromptLibrary",
    "PromptTemplate",
    "DEFAULT_PROMPTS",
    "render_prompt",
    "RenderedPrompt",
    "DEFAULT_LOCATION",
    "LOCATIONS",
    "PlannedAction",
    "Planner",
    "StaticPlanner",
    "jitter",
    "resolve_location",
    "AmbientExchange",
    "LLMPlanner",
    "LLMReflectionEngine",
    "LLMSocialAnalyzer",
    "SocialAnalysis",
    "confused_plan",
    "REFLECTION_IMPORTANCE",
    "ReflectionEngine",
    "apply_reflection",
    "reflect",
    "generate_ambient_dialogue",
    "generate_greeting",
    "stream_dialogue",
    "advance_agent",
    "AgentCognition",
    "AgentCognitionMap",
    "build_default_cognition",
    "request_plan",
]
