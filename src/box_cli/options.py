"""Assembly of the options passed to a plugin's generator.

Options come from exactly one source, checked in this order:

1. inline JSON (``--inline-options``), which must parse or the invocation fails;
2. explicit command-line flags, used verbatim;
3. the plugin's interactive prompts, answered through ``questionary``;
4. nothing, giving an empty mapping.

A ``registry`` flag is not a plugin option: it is set aside before the source
is chosen and merged back into whatever the source produced.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

import questionary

from box_cli.exceptions import InvalidOptionsJSONError
from box_cli.manifest import ProjectDescriptor

logger = logging.getLogger(__name__)

INLINE_OPTIONS_KEY = "$inlineOptions"
RESERVED_KEYS = ("_", "registry", INLINE_OPTIONS_KEY)
NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")

Prompter = Callable[[List[Dict[str, Any]]], Dict[str, Any]]


@dataclass(frozen=True)
class InlineJSON:
    raw: str


@dataclass(frozen=True)
class Explicit:
    options: Dict[str, Any]


@dataclass(frozen=True)
class Interactive:
    prompts: Any


@dataclass(frozen=True)
class NoOptions:
    pass


OptionSource = Union[InlineJSON, Explicit, Interactive, NoOptions]


def select_option_source(options: Dict[str, Any], prompts: Any = None) -> OptionSource:
    """Decide which source provides the plugin options."""
    raw = options.get(INLINE_OPTIONS_KEY)
    if raw:
        return InlineJSON(raw)
    explicit = {k: v for k, v in options.items() if k not in RESERVED_KEYS}
    if explicit:
        return Explicit(explicit)
    if prompts is not None:
        return Interactive(prompts)
    return NoOptions()


def parse_inline_options(raw: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidOptionsJSONError(f"Couldn't parse inline options JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise InvalidOptionsJSONError(
            f"Couldn't parse inline options JSON: expected an object, got {type(parsed).__name__}"
        )
    return parsed


def resolve_prompts(prompts: Any, pkg: ProjectDescriptor) -> List[Dict[str, Any]]:
    """Turn a plugin's prompts collaborator into a list of questions."""
    if callable(prompts):
        prompts = prompts(pkg)
    get_prompts = getattr(prompts, "get_prompts", None)
    if callable(get_prompts):
        prompts = get_prompts(pkg)
    return list(prompts or [])


def ask(questions: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Run an interactive question/answer session."""
    return questionary.prompt(questions)


def assemble_options(
    options: Dict[str, Any],
    pkg: ProjectDescriptor,
    prompts: Any = None,
    prompter: Optional[Prompter] = None,
) -> Dict[str, Any]:
    """Produce the final option mapping for a generator invocation.

    Raises:
        InvalidOptionsJSONError: if inline options are given and are not a JSON object.
    """
    source = select_option_source(options, prompts)
    if isinstance(source, InlineJSON):
        plugin_options = parse_inline_options(source.raw)
    elif isinstance(source, Explicit):
        plugin_options = dict(source.options)
    elif isinstance(source, Interactive):
        questions = resolve_prompts(source.prompts, pkg)
        plugin_options = (prompter or ask)(questions) if questions else {}
    else:
        plugin_options = {}
    logger.debug(f"Plugin options from {type(source).__name__}: {plugin_options}")

    registry = options.get("registry")
    if registry is not None:
        return {"registry": registry, **plugin_options}
    return plugin_options


def _coerce(value: str) -> Any:
    if NUMBER_RE.match(value):
        return float(value) if "." in value else int(value)
    return value


def parse_plugin_args(args: List[str]) -> Dict[str, Any]:
    """Parse free-form ``--key value`` arguments meant for a plugin.

    ``--flag`` alone is ``True``, ``--no-flag`` is ``False`` and numeric
    values become numbers. Positional leftovers are collected under ``_``.
    """
    parsed: Dict[str, Any] = {}
    positional: List[Any] = []
    i = 0
    while i < len(args):
        arg = args[i]
        if arg.startswith("--") and len(arg) > 2:
            key, sep, value = arg[2:].partition("=")
            if sep:
                parsed[key] = _coerce(value)
            elif key.startswith("no-"):
                parsed[key[3:]] = False
            elif i + 1 < len(args) and not args[i + 1].startswith("--"):
                parsed[key] = _coerce(args[i + 1])
                i += 1
            else:
                parsed[key] = True
        else:
            positional.append(_coerce(arg))
        i += 1
    if positional:
        parsed["_"] = positional
    return parsed
