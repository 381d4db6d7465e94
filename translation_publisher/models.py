from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Sequence, Tuple


@dataclass(slots=True)
class SheetHandle:
    """Rows of one worksheet, read once and addressed by 0-based (row, column)."""

    name: str
    rows: List[Tuple[Any, ...]]

    @property
    def max_rows(self) -> int:
        return len(self.rows)

    @property
    def max_columns(self) -> int:
        return max((len(row) for row in self.rows), default=0)

    def cell(self, row: int, col: int) -> Optional[Any]:
        if row < 0 or col < 0 or row >= len(self.rows):
            return None
        values = self.rows[row]
        if col >= len(values):
            return None
        return values[col]


@dataclass(frozen=True, slots=True)
class TranslationSet:
    """Translations of one locale; the first entry is always ``"key" -> locale``."""

    locale: str
    entries: Mapping[str, str]

    @classmethod
    def from_items(cls, locale: str, items: Sequence[Tuple[str, str]] | Mapping[str, str]) -> "TranslationSet":
        data = dict(items)
        return cls(locale=locale, entries=MappingProxyType(data))

    def __len__(self) -> int:
        return len(self.entries)

    def as_dict(self) -> dict[str, str]:
        return dict(self.entries)


@dataclass(slots=True)
class PublishReport:
    """Outcome of one publication run against the bucket."""

    version: int
    aborted: bool = False
    deleted: List[str] = field(default_factory=list)
    failed_deletes: List[str] = field(default_factory=list)
    uploaded: List[str] = field(default_factory=list)
    missing_local: List[str] = field(default_factory=list)
    failed_uploads: List[str] = field(default_factory=list)
    failed_visibility: List[str] = field(default_factory=list)
    purged_local: List[Path] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.aborted and bool(self.uploaded) and not self.failed_uploads

    def summary(self) -> str:
        if self.aborted:
            return f"version {self.version}: aborted before deleting remote files"
        return (
            f"version {self.version}: deleted={len(self.deleted)} "
            f"uploaded={len(self.uploaded)} missing={len(self.missing_local)} "
            f"upload_failures={len(self.failed_uploads)} "
            f"visibility_failures={len(self.failed_visibility)} "
            f"purged={len(self.purged_local)}"
        )
