"""
CaseDossier Output

Dossier serialization and JSON Schema validation.

The serialized form keeps the Dossier's key order (docs, facts,
correlations, timeline, patterns, amplifiedViolations, theories, chains,
validationReport, then the extended keys) so diffs between runs stay
readable. Two runs over the same inputs produce byte-identical JSON.
"""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Union

from jsonschema import Draft202012Validator

from .exceptions import OutputSchemaError
from .models import Dossier

SCHEMA_PATH = Path(__file__).parent / "schemas" / "dossier.schema.json"

MAX_REPORTED_ERRORS = 10


@lru_cache(maxsize=1)
def load_schema() -> dict[str, Any]:
    """Load the bundled dossier JSON schema."""
    with open(SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    schema = load_schema()
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def schema_errors(data: dict[str, Any]) -> list[str]:
    """
    Validate serialized dossier data against the schema.

    Returns:
        Up to ten ``path: message`` strings, empty when valid
    """
    errors = sorted(
        _validator().iter_errors(data),
        key=lambda e: [str(p) for p in e.absolute_path],
    )
    messages = []
    for error in errors[:MAX_REPORTED_ERRORS]:
        path = " -> ".join(str(p) for p in error.absolute_path) or "<root>"
        messages.append(f"{path}: {error.message}")
    return messages


def validate_output(data: Union[Dossier, dict[str, Any]]) -> dict[str, Any]:
    """
    Validate a Dossier (or its serialized dict).

    Returns:
        The serialized dict

    Raises:
        OutputSchemaError: If the data does not conform to the schema
    """
    if isinstance(data, Dossier):
        data = data.to_dict()
    errors = schema_errors(data)
    if errors:
        raise OutputSchemaError(
            message=f"Dossier does not conform to its schema ({len(errors)} errors shown)",
            details={"invariants": ["output_schema"], "errors": errors},
        )
    return data


def to_json(dossier: Dossier, indent: int = 2) -> str:
    """Serialize a Dossier to JSON text in emission order."""
    return json.dumps(dossier.to_dict(), indent=indent, ensure_ascii=False) + "\n"


def write_dossier(dossier: Dossier, path: Union[str, Path]) -> Path:
    """Write a Dossier as UTF-8 JSON; returns the path written."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(to_json(dossier), encoding="utf-8")
    return target
