import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from comicseed.core.errors import SourceError
from comicseed.core.image_path import is_image_filename, looks_like_path, normalize_image_path

logger = logging.getLogger(__name__)

# Keys searched (in order) when a file holds an object wrapping the record list
WRAPPER_KEYS = ("data", "items", "comics", "chapters", "users", "results")

# An object carrying one of these is a record, not a wrapper
RECORD_MARKERS = ("title", "slug", "email", "name")


class FileLoader:
    """Discovers and reads JSON seed sources"""

    def __init__(self, base_dir: Union[str, Path] = "."):
        self.base_dir = Path(base_dir)

    def _resolve(self, pattern: Union[str, Path]) -> Path:
        path = Path(pattern)
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    def read_json_file(self, path: Union[str, Path]) -> Any:
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise SourceError(path, "file not found") from None
        except json.JSONDecodeError as e:
            raise SourceError(path, f"malformed JSON ({e.msg} at line {e.lineno})") from e
        except (OSError, UnicodeDecodeError) as e:
            raise SourceError(path, f"unreadable ({e})") from e

    def find_json_files(self, pattern: Union[str, Path]) -> List[Path]:
        """
        Exact paths must exist (otherwise nothing is returned).
        '*' and '?' wildcards match file names inside the pattern's directory.
        """
        path = self._resolve(pattern)

        if "*" not in path.name and "?" not in path.name:
            return [path.resolve()] if path.is_file() else []

        directory = path.parent
        if not directory.is_dir():
            logger.warning(f"Pattern {pattern} matched no files (missing directory {directory})")
            return []

        matches = sorted(p.resolve() for p in directory.glob(path.name) if p.is_file())
        if not matches:
            logger.debug(f"Pattern {pattern} matched no files")
        return matches

    def read_multiple_json_files(self, patterns: Sequence[Union[str, Path]]) -> List[Any]:
        """Read every file matched by the patterns and merge their records"""
        records: List[Any] = []
        seen = set()

        for pattern in patterns:
            for file_path in self.find_json_files(pattern):
                if file_path in seen:
                    continue
                seen.add(file_path)

                try:
                    data = self.read_json_file(file_path)
                except SourceError as e:
                    logger.error(f"Error reading seed file {e}")
                    continue

                normalize_paths(data)
                file_records = extract_records(data)
                logger.info(f"Loaded {len(file_records)} record(s) from {file_path.name}")
                records.extend(file_records)

        return records


def extract_records(data: Any) -> List[Any]:
    if isinstance(data, list):
        return list(data)

    if not isinstance(data, dict):
        return [data]

    for key in WRAPPER_KEYS:
        if isinstance(data.get(key), list):
            return list(data[key])

    if any(marker in data for marker in RECORD_MARKERS):
        return [data]

    largest: Optional[list] = None
    for value in data.values():
        if isinstance(value, list) and value and all(isinstance(v, dict) for v in value):
            if largest is None or len(value) > len(largest):
                largest = value

    return list(largest) if largest is not None else [data]


def normalize_paths(obj: Any) -> Any:
    """Rewrite image file names and path-like strings in place, recursively"""
    if isinstance(obj, list):
        for i, value in enumerate(obj):
            if isinstance(value, str):
                if is_image_filename(value) or looks_like_path(value):
                    obj[i] = normalize_image_path(value)
            else:
                normalize_paths(value)
    elif isinstance(obj, dict):
        for key, value in obj.items():
            if isinstance(value, str):
                if is_image_filename(value) or looks_like_path(value):
                    obj[key] = normalize_image_path(value)
            elif isinstance(value, (dict, list)):
                normalize_paths(value)
    return obj
