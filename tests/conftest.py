from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Sequence

import openpyxl
import pytest

from translation_publisher.config import DEFAULT_LOCALES, StorageConfig
from translation_publisher.models import SheetHandle

HEADER = ["FR", "FR - Key", "EN", "ES", "DE", "PT", "NL", "IT"]


def translation_row(key: str, suffix: str = "") -> List[str]:
    """Cells for header columns FR, key, EN, ES, DE, PT, NL, IT."""

    return [
        f"vfr{suffix}",
        key,
        f"ven{suffix}",
        f"ves{suffix}",
        f"vde{suffix}",
        f"vpt{suffix}",
        f"vnl{suffix}",
        f"vit{suffix}",
    ]


def sheet_rows(data_rows: Sequence[Sequence[Any]]) -> List[List[Any]]:
    """Two title rows, a header at row 2 starting at column 2, then data."""

    rows: List[List[Any]] = [["Translations"], ["Mobile application"], [None, None, *HEADER]]
    rows.extend([None, None, *row] for row in data_rows)
    return rows


class FakeStorageClient:
    """In-memory stand-in for CloudStorageClient."""

    def __init__(self, objects: Sequence[str] = (), bucket_name: str = "bucket") -> None:
        self.bucket_name = bucket_name
        self.objects: Dict[str, bytes] = {name: b"{}" for name in objects}
        self.acls: Dict[str, List[Dict[str, str]]] = {}
        self.fail_list = False
        self.fail_delete: set[str] = set()
        self.fail_upload: set[str] = set()
        self.fail_acl: set[str] = set()
        self.calls: List[str] = []
        self.closed = False

    def __enter__(self) -> "FakeStorageClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True

    def list_object_names(self, prefix: str = "") -> List[str]:
        self.calls.append("list")
        if self.fail_list:
            raise RuntimeError("listing failed")
        return [name for name in self.objects if name.startswith(prefix)]

    def delete_object(self, object_name: str) -> None:
        self.calls.append(f"delete:{object_name}")
        if object_name in self.fail_delete:
            raise RuntimeError("delete failed")
        del self.objects[object_name]
        self.acls.pop(object_name, None)

    def upload_file(self, path: Path, object_name: str) -> dict:
        self.calls.append(f"upload:{object_name}")
        if object_name in self.fail_upload:
            raise RuntimeError("upload failed")
        self.objects[object_name] = path.read_bytes()
        return {"name": object_name}

    def list_object_acl(self, object_name: str) -> List[Dict[str, str]]:
        if object_name in self.fail_acl:
            raise RuntimeError("acl failed")
        return list(self.acls.get(object_name, []))

    def insert_object_acl(self, object_name: str, entity: str, role: str) -> dict:
        entry = {"entity": entity, "role": role}
        self.acls.setdefault(object_name, []).append(entry)
        return entry


@pytest.fixture
def storage_conf() -> StorageConfig:
    return StorageConfig(bucket_name="bucket", credentials_file=Path("service_account.json"))


@pytest.fixture
def locales() -> Dict[str, str]:
    return dict(DEFAULT_LOCALES)


@pytest.fixture
def make_sheet():
    def _make(data_rows: Sequence[Sequence[Any]]) -> SheetHandle:
        return SheetHandle(name="Mobile", rows=[tuple(row) for row in sheet_rows(data_rows)])

    return _make


@pytest.fixture
def make_workbook(tmp_path: Path):
    def _make(rows: Sequence[Sequence[Any]], sheet_name: str = "Mobile", name: str = "strings.xlsx") -> Path:
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.title = sheet_name
        for row in rows:
            sheet.append(list(row))
        path = tmp_path / name
        workbook.save(path)
        return path

    return _make
