"""
Storyreel File Utilities

JSON file helpers used by the project and history stores.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Union

from storyreel.core.exceptions import PersistenceError


def read_json(path: Union[str, Path], encoding: str = 'utf-8') -> Dict[str, Any]:
    """
    Read and parse a JSON file.

    Args:
        path: Path to JSON file
        encoding: File encoding (default: utf-8)

    Returns:
        Parsed JSON data as dictionary

    Raises:
        PersistenceError: If file cannot be read or parsed
    """
    path = Path(path)
    if not path.exists():
        raise PersistenceError(f"File not found: {path}")

    try:
        with open(path, 'r', encoding=encoding) as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"Invalid JSON in {path}: {e}")
    except OSError as e:
        raise PersistenceError(f"Failed to read {path}: {e}")


def write_json_atomic(
    path: Union[str, Path],
    data: Any,
    encoding: str = 'utf-8',
    indent: int = 2,
) -> None:
    """
    Write JSON through a temp file in the same directory, then replace.

    Readers never observe a half-written file.
    """
    path = Path(path)
    ensure_directory(path.parent)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, 'w', encoding=encoding) as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)
        os.replace(tmp_name, path)
    except (OSError, TypeError, ValueError) as e:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistenceError(f"Failed to write {path}: {e}")


def ensure_directory(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PersistenceError(f"Cannot create directory {path}: {e}")
    return path
