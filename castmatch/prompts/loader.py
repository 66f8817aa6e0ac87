"""
Versioned prompt and template loader.

Templates live in YAML files grouped by domain:

    v1/
    ├── shared/    # System instructions
    ├── casting/   # Character description and candidate matching prompts
    └── reports/   # Plain-text report layout

Each key maps either to a template string or to a mapping with ``template``
and optional ``required_variables``. Templates are Jinja2 with strict
undefined handling, so a missing variable fails loudly.

Usage:
    from castmatch.prompts.loader import render_prompt

    prompt = render_prompt("prompt_character_description", **attrs.model_dump())
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, StrictUndefined, TemplateSyntaxError

logger = logging.getLogger(__name__)

_PROMPTS_DIR = Path(__file__).resolve().parent
_VERSION = "v1"

_DOMAIN_DIRS = [
    "shared",
    "casting",
    "reports",
]


@lru_cache(maxsize=1)
def _jinja_env() -> Environment:
    return Environment(
        undefined=StrictUndefined,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must be a mapping at top level")
    return data


@lru_cache(maxsize=1)
def _load_prompts() -> dict[str, Any]:
    """Load every prompt file, failing fast on invalid Jinja2 syntax."""
    prompts: dict[str, Any] = {}
    version_dir = _PROMPTS_DIR / _VERSION

    for domain in _DOMAIN_DIRS:
        domain_dir = version_dir / domain
        if not domain_dir.exists():
            continue

        for yaml_file in sorted(domain_dir.glob("*.yaml")):
            data = _read_yaml(yaml_file)
            for key, value in data.items():
                template = _template_of(value)
                if template is None:
                    continue
                try:
                    _jinja_env().parse(template)
                except TemplateSyntaxError as e:
                    raise ValueError(f"Invalid Jinja2 template in {yaml_file}:{key}: {e}") from e
            prompts.update(data)

    logger.debug("prompts_loaded count=%d", len(prompts))
    return prompts


def _template_of(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("template"), str):
        return value["template"]
    return None


def get_prompt(name: str) -> str:
    """
    Get a prompt template by name.

    Raises:
        KeyError: If prompt not found or not a template
    """
    template = _template_of(_load_prompts().get(name))
    if template is None:
        raise KeyError(f"Prompt '{name}' not found or not a string")
    return template


def get_required_variables(name: str) -> list[str]:
    value = _load_prompts().get(name)
    if isinstance(value, dict):
        return list(value.get("required_variables") or [])
    return []


def render_prompt(name: str, **context: Any) -> str:
    """
    Render a prompt template with the given context.

    Raises:
        KeyError: If the prompt does not exist
        ValueError: If declared required variables are missing
    """
    missing = [v for v in get_required_variables(name) if v not in context]
    if missing:
        raise ValueError(f"Missing required variables for '{name}': {missing}")

    template = get_prompt(name)
    return _jinja_env().from_string(template).render(**context).strip()


def list_prompts(domain: str | None = None) -> list[str]:
    if domain is None:
        return list(_load_prompts().keys())

    domain_dir = _PROMPTS_DIR / _VERSION / domain
    if not domain_dir.exists():
        return []

    names: list[str] = []
    for yaml_file in sorted(domain_dir.glob("*.yaml")):
        names.extend(_read_yaml(yaml_file).keys())
    return names


def clear_cache() -> None:
    """Clear cached prompts (useful for hot-reload scenarios)."""
    _load_prompts.cache_clear()
    _jinja_env.cache_clear()
