import json
import logging
from pathlib import Path
from typing import Any

from core.models import ProductRecord

log = logging.getLogger(__name__)


class CatalogLoadError(Exception):
    """The raw batch is missing or is not a JSON list of objects."""


def load_raw_batch(path: Path | str) -> list[dict[str, Any]]:
    path = Path(path)
    if not path.exists():
        raise CatalogLoadError(f"Products file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise CatalogLoadError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogLoadError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, list):
        raise CatalogLoadError(f"Expected a JSON list in {path}, got {type(data).__name__}")
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise CatalogLoadError(f"Item #{i} in {path} is {type(item).__name__}, not an object")

    log.info(f"Loaded {len(data)} raw items from {path}")
    return data


def write_raw_batch(items: list[dict[str, Any]], path: Path | str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(items, indent=2, ensure_ascii=False), encoding="utf-8")
    log.info(f"Saved {len(items)} items to {path}")


def write_records(records: list[ProductRecord], path: Path | str) -> None:
    write_raw_batch([r.to_json_dict() for r in records], path)
