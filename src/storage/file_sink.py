# src/storage/file_sink.py
import json
from pathlib import Path
from typing import Any, List, Optional, Union

from loguru import logger


class FileSink:
    """Writes run artifacts into a fixed output directory.

    Every artifact is overwritten on each run.
    """

    def __init__(self, output_dir: Union[str, Path] = "public"):
        self.output_dir = Path(output_dir)
        self.failures: List[str] = []

    def persist(self, name: str, content: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / name
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        logger.info(f"Wrote {len(content)} chars to {path}")
        return path

    def persist_json(self, name: str, data: Any) -> Path:
        return self.persist(name, json.dumps(data, indent=2, ensure_ascii=False))

    def notify_failure(self, message: str) -> None:
        self.failures.append(message)
        logger.error(f"Run failed: {message}")

    @property
    def last_failure(self) -> Optional[str]:
        return self.failures[-1] if self.failures else None
