"""
JSON file handling for result collections.
"""

import json
from pathlib import Path
from typing import Iterable, List, Type, TypeVar

from loguru import logger
from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)


class JSONHandler:
    """Write and read a pretty-printed JSON array of result records."""

    def __init__(self, json_file: Path):
        self.json_file = Path(json_file)

    def write(self, records: Iterable[BaseModel]) -> int:
        """Write records with their camelCase field names. Returns the record count."""
        payload = [r.model_dump(mode="json", by_alias=True) for r in records]
        self.json_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.json_file, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        logger.debug(f"Wrote {len(payload)} record(s) to {self.json_file}")
        return len(payload)

    def read(self, model: Type[M]) -> List[M]:
        """Parse the file back into ``model`` instances."""
        if not self.json_file.exists():
            return []
        with open(self.json_file, "r", encoding="utf-8") as f:
            payload = json.load(f)
        if isinstance(payload, dict):
            payload = [payload]
        return [model.model_validate(item) for item in payload]
