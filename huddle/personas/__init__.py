"""Persona roster."""

from huddle.personas.registry import DEFAULT_PERSONAS, Persona, PersonaRegistry, build_persona_registry

__all__ = ["DEFAULT_PERSONAS", "Persona", "PersonaRegistry", "build_persona_registry"]
