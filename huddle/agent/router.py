"""Pick which persona answers a message."""

from __future__ import annotations

import json
import re
from typing import Any, Sequence

from loguru import logger

from huddle.agent.context import TurnContext, build_message_envelope
from huddle.personas import PersonaRegistry
from huddle.personas.prompts import CLASSIFIER_PROMPT
from huddle.providers.base import LLMProvider
from huddle.storage import ChatMessage

# "Hey Rishi," / "**Hey Rishi**," / "hey rishi ,"
_ADDRESS_RE = re.compile(r"^[\s*_>]*hey\s+[*_]*([A-Za-z][\w-]*)[*_]*\s*,", re.IGNORECASE)
_JSON_RE = re.compile(r"\{.*\}", re.DOTALL)


def match_address_override(text: str, registry: PersonaRegistry) -> str | None:
    """Return the persona a message opens by addressing, if it is a known one."""
    match = _ADDRESS_RE.match(text or "")
    if not match:
        return None
    persona = registry.get(match.group(1))
    return persona.name if persona else None


def parse_classification(content: str | None) -> str | None:
    """Extract the ``persona`` field from a classifier reply, tolerating fences and chatter."""
    if not content:
        return None
    match = _JSON_RE.search(content)
    if not match:
        return None
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        return None
    name = data.get("persona")
    return name if isinstance(name, str) and name.strip() else None


class Router:
    """
    Selects the responding persona for each message.

    A leading "Hey <Name>," that names a known persona wins without a model
    call. Otherwise a classifier model picks from the roster. Every failure
    (transport errors, malformed JSON, a name that is not on the roster, no
    name at all) falls back to the default persona. Selection never writes
    anything.
    """

    def __init__(
        self,
        provider: LLMProvider,
        registry: PersonaRegistry,
        model: str | None = None,
        history_window: int = 10,
    ):
        self.provider = provider
        self.registry = registry
        self.model = model or provider.get_default_model()
        self.history_window = history_window

    async def select(
        self,
        history: Sequence[ChatMessage],
        message: str,
        context: TurnContext,
    ) -> str:
        override = match_address_override(message, self.registry)
        if override:
            logger.debug(f"Addressed override to {override}")
            return override

        default = self.registry.default.name
        try:
            response = await self.provider.chat(
                messages=self._build_messages(history, message, context),
                model=self.model,
                max_tokens=100,
                temperature=0.0,
            )
            name = parse_classification(response.content)
        except Exception as e:
            logger.warning(f"Classification failed, using {default}: {e}")
            return default

        persona = self.registry.get(name)
        if persona is None:
            logger.info(f"Classifier returned {name!r}; routing to {default}")
            return default
        return persona.name

    def _build_messages(
        self,
        history: Sequence[ChatMessage],
        message: str,
        context: TurnContext,
    ) -> list[dict[str, Any]]:
        prompt = CLASSIFIER_PROMPT.format(descriptions=self.registry.describe())
        messages: list[dict[str, Any]] = [{"role": "system", "content": prompt}]
        recent = list(history)[-self.history_window:] if self.history_window > 0 else []
        if recent:
            transcript = "\n".join(f"{m.author}: {m.body}" for m in recent)
            messages.append({"role": "user", "content": f"Conversation so far:\n{transcript}"})
        messages.append({"role": "user", "content": build_message_envelope(context, message)})
        return messages
