"""Append-only journal files for reports and audit logs."""

from pathlib import Path
from typing import Iterable, List, Union

from dataclasses_json import DataClassJsonMixin

from ..logging import get_logger

logger = get_logger(__name__)


class Journal:
    """Append-only text file.

    Each write opens, appends and closes the file so no handle is held
    between writes and a crash leaves a valid prefix.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def append(self, line: str) -> None:
        self.append_many([line])

    def append_many(self, lines: Iterable[str]) -> None:
        payload = "".join(line.rstrip("\n") + "\n" for line in lines)
        if not payload:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as handle:
            handle.write(payload)

    def append_record(self, record: DataClassJsonMixin) -> None:
        """Append a dataclass record as one JSON line."""
        self.append(record.to_json())

    def read_lines(self) -> List[str]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as handle:
            return [line.rstrip("\n") for line in handle if line.strip()]

    def __repr__(self) -> str:
        return f"Journal({str(self.path)!r})"
