"""Project file storage.

Reads and writes identification keys as JSON (``.json``) or YAML
(``.yaml``/``.yml``) using the camelCase wire format. Writes are atomic:
the data goes to a temp file that then replaces the target.

Public API:
    load_project: Load and validate a project file
    load_payload: Load a raw AI/import payload file
    save_project: Write a project atomically
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from taxokey.core.exceptions import PayloadError, StorageError
from taxokey.ingest.payload import extract_json_payload
from taxokey.models import Project

logger = logging.getLogger(__name__)

__all__ = ["load_payload", "load_project", "save_project"]

_YAML_SUFFIXES = (".yaml", ".yml")


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in _YAML_SUFFIXES


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise StorageError(f"Project file not found: {path}") from e
    except UnicodeDecodeError as e:
        raise StorageError(f"Cannot decode file (not valid UTF-8): {path}") from e
    except OSError as e:
        raise StorageError(f"Failed to read {path}: {e}") from e


def load_payload(path: Path) -> Any:
    """Load a raw payload: YAML, JSON, or an AI response with JSON inside.

    Args:
        path: Payload file.

    Returns:
        Parsed value (normally a dict).

    Raises:
        StorageError: If the file cannot be read or holds no parseable data.

    """
    content = _read_text(path)
    if _is_yaml(path):
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise StorageError(f"Invalid YAML in {path}: {e}") from e
    try:
        return extract_json_payload(content)
    except PayloadError as e:
        raise StorageError(f"Invalid JSON in {path}: {e}") from e


def load_project(path: Path) -> Project:
    """Load a project file and validate it.

    Args:
        path: ``.json``, ``.yaml`` or ``.yml`` file.

    Returns:
        Validated Project.

    Raises:
        StorageError: If file not found, unparseable, or validation fails.

    """
    content = _read_text(path)
    try:
        data = yaml.safe_load(content) if _is_yaml(path) else json.loads(content)
    except yaml.YAMLError as e:
        raise StorageError(f"Invalid YAML in {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise StorageError(f"Invalid JSON in {path}: {e}") from e

    try:
        return Project.model_validate(data)
    except ValidationError as e:
        raise StorageError(f"Schema validation failed for {path}: {e}") from e


def save_project(project: Project, path: Path) -> Path:
    """Write a project atomically using temp file + rename.

    Args:
        project: Project to write.
        path: Target file; format chosen by suffix (JSON unless YAML).

    Returns:
        The written path.

    Raises:
        StorageError: If the write fails.

    """
    data = project.to_wire()
    temp_path = path.with_name(path.name + ".tmp")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(temp_path, "w", encoding="utf-8") as f:
            if _is_yaml(path):
                yaml.dump(
                    data,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                    width=120,
                )
            else:
                json.dump(data, f, ensure_ascii=False, indent=2)
                f.write("\n")

        os.replace(temp_path, path)

    except OSError as e:
        if temp_path.exists():
            temp_path.unlink()
        raise StorageError(f"Failed to write {path}: {e}") from e

    logger.info("Saved project %r to %s", project.id, path)
    return path
