"""
Settings files are YAML (.yaml/.yml) or json5 (.json5/.jsonc/.json).

String values may contain ``${NAME}`` placeholders, filled from an optional
top-level ``variables:`` mapping, and ``${env:NAME}`` placeholders, filled
from the environment. ``$${...}`` stands for a literal ``${...}``.
"""
from typing import Any, Dict, Optional, Union
import os
import re
from pathlib import Path

import yaml
import json5  # type: ignore

from .models import DEFAULT_CONFIG_NAMES, Settings

PLACEHOLDER_RE = re.compile(r"\$(\$?)\{(env:)?([A-Za-z_][A-Za-z0-9_]*)\}")

YAML_SUFFIXES = (".yaml", ".yml")
JSON5_SUFFIXES = (".json5", ".jsonc", ".json")


def _expand(value: str, table: Dict[str, str], where: str) -> str:
    def replace(m: "re.Match[str]") -> str:
        escaped, env, name = m.groups()
        if escaped:
            return m.group(0)[1:]
        if env:
            found = os.environ.get(name)
            if found is None:
                raise ValueError(f"{where}: environment variable {name} is not set")
            return found
        if name not in table:
            raise ValueError(f"{where}: undefined variable {name}")
        return table[name]

    return PLACEHOLDER_RE.sub(replace, value)


def _read_variables(doc: Dict[str, Any]) -> Dict[str, str]:
    """Pop the variables mapping; an entry may only use entries declared above it."""
    declared = doc.pop("variables", None)
    if declared is None:
        return {}
    if not isinstance(declared, dict):
        raise ValueError("'variables' must be a mapping of names to values")
    table: Dict[str, str] = {}
    for name, value in declared.items():
        text = "" if value is None else str(value)
        table[str(name)] = _expand(text, table, f"variables.{name}")
    return table


def _substitute(node: Any, table: Dict[str, str], where: str) -> Any:
    if isinstance(node, str):
        return _expand(node, table, where)
    if isinstance(node, dict):
        return {
            key: _substitute(value, table, f"{where}.{key}" if where else str(key))
            for key, value in node.items()
        }
    if isinstance(node, list):
        return [_substitute(item, table, f"{where}[{i}]") for i, item in enumerate(node)]
    return node


def _read_document(path: Path) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix in YAML_SUFFIXES:
        try:
            doc = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    elif suffix in JSON5_SUFFIXES:
        doc = json5.loads(text)
    else:
        raise ValueError(f"Unsupported config file extension: {suffix or path.name}")
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return doc


def load_settings(path: Union[str, Path]) -> Settings:
    doc = _read_document(Path(path))
    table = _read_variables(doc)
    return Settings.model_validate(_substitute(doc, table, ""))


def find_settings_file(base: Union[str, Path]) -> Optional[Path]:
    """First of DEFAULT_CONFIG_NAMES present in base, if any."""
    base_path = Path(base)
    for name in DEFAULT_CONFIG_NAMES:
        candidate = base_path / name
        if candidate.is_file():
            return candidate
    return None
