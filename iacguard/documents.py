"""Data document loading (YAML and JSON templates)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from .rules.errors import DocumentError

logger = logging.getLogger(__name__)

DATA_SUFFIXES = (".yaml", ".yml", ".json", ".template")


class TemplateLoader(yaml.SafeLoader):
    """SafeLoader that understands CloudFormation short-form intrinsics."""


def _construct_intrinsic(loader: TemplateLoader, suffix: str, node: yaml.Node) -> dict[str, Any]:
    # !Ref and !Condition keep their bare names, everything else is Fn::<Name>.
    key = suffix if suffix in ("Ref", "Condition") else f"Fn::{suffix}"
    value: Any
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
        if suffix == "GetAtt" and isinstance(value, str) and "." in value:
            value = value.split(".", 1)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)
    return {key: value}


def _construct_timestamp_as_str(loader: TemplateLoader, node: yaml.Node) -> str:
    return loader.construct_scalar(node)  # type: ignore[arg-type]


TemplateLoader.add_multi_constructor("!", _construct_intrinsic)
TemplateLoader.add_constructor("tag:yaml.org,2002:timestamp", _construct_timestamp_as_str)


def loads_document(text: str, name: str = "<data>") -> Any:
    """Parse YAML or JSON text into plain dicts, lists and scalars.

    JSON (by ``.json`` name or a leading ``{``/``[``) goes through the json
    module first, since YAML rejects tab indentation; text that is not
    valid JSON falls back to YAML. An empty document loads as an empty
    mapping.
    """
    if name.endswith(".json") or text.lstrip().startswith(("{", "[")):
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.debug("%s: not JSON (%s), parsing as YAML", name, e)
        else:
            return {} if data is None else data

    try:
        data = yaml.load(text, Loader=TemplateLoader)  # noqa: S506 - SafeLoader subclass
    except yaml.YAMLError as e:
        raise DocumentError(f"{name}: {e}") from e
    return {} if data is None else data


def load_document(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentError(f"{path}: {e}") from e
    return loads_document(text, str(path))
