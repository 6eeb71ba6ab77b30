"""Routing, persona replies and the conversation driver."""

from huddle.agent.context import TurnContext, build_message_envelope
from huddle.agent.orchestrator import Orchestrator, TurnReply
from huddle.agent.persona_agent import PersonaAgent
from huddle.agent.progress import ProgressReporter
from huddle.agent.router import Router, match_address_override

__all__ = [
    "Orchestrator",
    "PersonaAgent",
    "ProgressReporter",
    "Router",
    "TurnContext",
    "TurnReply",
    "build_message_envelope",
    "match_address_override",
]
