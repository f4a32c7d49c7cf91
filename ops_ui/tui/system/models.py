from dataclasses import dataclass
from typing import Any


@dataclass
class TableModel:
    title: str
    columns: list[str]
    rows: list[list[str]]


@dataclass(frozen=True)
class PickItem:
    id: str
    title: str
    description: str = ""
    payload: Any = None  # domain object
