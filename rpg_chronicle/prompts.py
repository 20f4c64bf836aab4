"""Handlebars prompt templates for summary synthesis, one per level.

Template context:

    level     the level being summarized ("npc", ...)
    entity    {"id", "name", "description", ...} for the entity itself
    items     upstream inputs, oldest/lowest id first:
              {"id", "version", "text"}: child summaries, or chat lines
              ("player: ...") for sessions
    count     len(items)

Templates configured in config.json override the defaults per level.
"""

from collections.abc import Callable
from typing import Any

import pybars

from rpg_chronicle.models import Level

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def _helper_last(this, options, items, count):
    """{{#last array N}}...{{/last}}: iterate over the last N items."""
    count = int(count)
    if count <= 0:
        return []
    result = []
    for item in list(items)[-count:]:
        result.extend(options["fn"](item))
    return result


_HELPERS: dict[str, Callable] = {
    "last": _helper_last,
}


DEFAULT_TEMPLATES: dict[Level, str] = {
    "session": (
        "You are keeping the chronicle of a role-playing world.\n"
        "Summarize this conversation between {{{entity.player_name}}} and the NPC "
        "{{{entity.npc_name}}} in one short paragraph. Keep names, promises, "
        "secrets and anything that changes the NPC's situation.\n\n"
        "{{#last items 200}}{{{text}}}\n{{/last}}\n"
        "Summary:"
    ),
    "npc": (
        "Below are summaries of {{count}} conversations with {{{entity.name}}}.\n"
        "{{#if entity.description}}About {{{entity.name}}}: {{{entity.description}}}\n{{/if}}"
        "Write what {{{entity.name}}} now knows, wants and remembers, in one paragraph.\n\n"
        "{{#each items}}- {{{text}}}\n{{/each}}\n"
        "Summary:"
    ),
    "building": (
        "Summarize what is happening in {{{entity.name}}} based on its {{count}} residents.\n\n"
        "{{#each items}}- {{{text}}}\n{{/each}}\n"
        "Summary:"
    ),
    "settlement": (
        "Summarize the current state of the settlement {{{entity.name}}} from "
        "the {{count}} building reports below.\n\n"
        "{{#each items}}- {{{text}}}\n{{/each}}\n"
        "Summary:"
    ),
    "world": (
        "Write a chronicle entry for the world {{{entity.name}}} from the "
        "{{count}} settlement reports below.\n\n"
        "{{#each items}}- {{{text}}}\n{{/each}}\n"
        "Chronicle:"
    ),
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def template_for(level: Level, overrides: dict[str, str] | None = None) -> str:
    if overrides and overrides.get(level):
        return overrides[level]
    return DEFAULT_TEMPLATES[level]
