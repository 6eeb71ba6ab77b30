"""Static persona table."""

from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, ConfigDict

from huddle.personas.prompts import ERIC_PROMPT, HARPER_PROMPT, RISHI_PROMPT, YASMIN_PROMPT


class Persona(BaseModel):
    """A configured responder: instructions, model and permitted tools."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    instructions: str
    model: str | None = None  # None means the configured default model
    toolsets: tuple[str, ...] = ()
    max_tool_rounds: int = 5
    is_default: bool = False
    temperature: float = 0.0

    @property
    def key(self) -> str:
        return self.name.lower()


class PersonaRegistry:
    """Lookup by case-insensitive name, with exactly one default persona."""

    def __init__(self, personas: Iterable[Persona]):
        self._personas: dict[str, Persona] = {}
        for persona in personas:
            if persona.key in self._personas:
                raise ValueError(f"Duplicate persona: {persona.name}")
            self._personas[persona.key] = persona
        defaults = [p for p in self._personas.values() if p.is_default]
        if len(defaults) != 1:
            raise ValueError(f"Exactly one default persona required, found {len(defaults)}")
        self._default = defaults[0]

    def get(self, name: str | None) -> Persona | None:
        if not name:
            return None
        return self._personas.get(name.strip().lower())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self):
        return iter(self._personas.values())

    def __len__(self) -> int:
        return len(self._personas)

    @property
    def default(self) -> Persona:
        return self._default

    @property
    def names(self) -> list[str]:
        return [p.name for p in self._personas.values()]

    def describe(self) -> str:
        """One line per persona for the classifier prompt."""
        return "\n".join(f"- {p.name}: {p.description}" for p in self._personas.values())


DEFAULT_PERSONAS: list[Persona] = [
    Persona(
        name="Harper",
        description="Trader. Buys and sells tokens, checks balances, moves ETH and tokens.",
        instructions=HARPER_PROMPT,
        toolsets=("trading",),
        max_tool_rounds=5,
    ),
    Persona(
        name="Eric",
        description="Market analyst. Risk assessments and buy/sell/hold calls on tokens.",
        instructions=ERIC_PROMPT,
        toolsets=("analytics",),
        max_tool_rounds=3,
    ),
    Persona(
        name="Rishi",
        description="Web3 admin. Wallets, funding, token deployments, Uniswap pools, basenames, NFTs.",
        instructions=RISHI_PROMPT,
        toolsets=("wallet",),
        max_tool_rounds=10,
    ),
    Persona(
        name="Yasmin",
        description="Marketing. Tweets, images, what people are saying on X, community and brand.",
        instructions=YASMIN_PROMPT,
        toolsets=("twitter",),
        max_tool_rounds=10,
        is_default=True,
    ),
]


def build_persona_registry(
    personas: Iterable[Persona] | None = None,
    *,
    default_model: str | None = None,
    default_persona: str | None = None,
    overrides: dict | None = None,
) -> PersonaRegistry:
    """
    Build a registry from the built-in roster plus config overrides.

    Args:
        personas: Roster to start from (defaults to the built-in four).
        default_model: Model for personas that do not pin one.
        default_persona: Name of the persona to mark as default.
        overrides: ``{name: PersonaConfig}`` from ``agents.personas``.
    """
    overrides = {k.lower(): v for k, v in (overrides or {}).items()}
    roster = list(personas or DEFAULT_PERSONAS)
    wanted_default = (default_persona or "").strip().lower()
    if wanted_default and wanted_default not in {p.key for p in roster}:
        raise ValueError(f"Unknown default persona: {default_persona}")

    built = []
    for persona in roster:
        update: dict = {}
        override = overrides.get(persona.key)
        if override is not None and override.model:
            update["model"] = override.model
        elif persona.model is None and default_model:
            update["model"] = default_model
        if override is not None and override.max_tool_rounds is not None:
            update["max_tool_rounds"] = override.max_tool_rounds
        if wanted_default:
            update["is_default"] = persona.key == wanted_default
        built.append(persona.model_copy(update=update) if update else persona)
    return PersonaRegistry(built)


__all__ = ["DEFAULT_PERSONAS", "Persona", "PersonaRegistry", "build_persona_registry"]
