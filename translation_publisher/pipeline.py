from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .config import KEY_COLUMN
from .excel_reader import HeaderMap, cell_to_text
from .models import SheetHandle, TranslationSet
from .versioning import versioned_file_name

LOGGER = logging.getLogger("translation_publisher.pipeline")


def _resolve_columns(header_map: HeaderMap, language_columns: Mapping[str, int]) -> Dict[str, Optional[int]]:
    """Translate header positions into absolute sheet columns."""

    header_columns = list(header_map.values())
    resolved: Dict[str, Optional[int]] = {}
    for code, position in language_columns.items():
        if position < len(header_columns):
            resolved[code] = header_columns[position]
        else:
            LOGGER.warning(
                "Column position %s for '%s' is outside the sheet header (%s columns); using empty values",
                position,
                code,
                len(header_columns),
            )
            resolved[code] = None
    return resolved


def build_translation_sets(
    sheet: SheetHandle,
    header_map: HeaderMap,
    language_columns: Mapping[str, int],
    locales: Mapping[str, str],
    header_begin_row: int,
) -> Dict[str, TranslationSet]:
    """Build one translation set per configured language.

    Every set starts with ``"key" -> <locale>``, followed by the data rows in
    sheet order. A key that appears twice keeps its last value. Rows keyed
    ``"key"`` are skipped so the locale entry is never overwritten.
    """

    columns = _resolve_columns(header_map, language_columns)

    def _get(row: int, code: str) -> str:
        col = columns.get(code)
        if col is None:
            return ""
        return cell_to_text(sheet.cell(row, col))

    maps: Dict[str, Dict[str, str]] = {code: {KEY_COLUMN: locale} for code, locale in locales.items()}
    seen: set[str] = set()
    duplicates: List[str] = []
    for row in range(header_begin_row + 1, sheet.max_rows):
        key = _get(row, KEY_COLUMN)
        if key == KEY_COLUMN:
            LOGGER.warning("Row %s uses the reserved key '%s'; skipping", row, KEY_COLUMN)
            continue
        if key in seen:
            duplicates.append(key)
        seen.add(key)
        for code, values in maps.items():
            values[key] = _get(row, code)

    if duplicates:
        LOGGER.warning(
            "%s duplicate translation keys found; the last occurrence wins: %s",
            len(duplicates),
            ", ".join(sorted(set(duplicates))),
        )

    return {code: TranslationSet.from_items(locales[code], values) for code, values in maps.items()}


def serialize_translation_set(translation_set: TranslationSet) -> str:
    return json.dumps(translation_set.as_dict(), ensure_ascii=False, indent=2)


def write_translation_files(
    sets: Mapping[str, TranslationSet],
    version: int,
    directory: Path,
) -> List[Path]:
    """Write each set to ``<locale>_<version>.json`` inside ``directory``."""

    directory.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for translation_set in sets.values():
        path = directory / versioned_file_name(translation_set.locale, version)
        path.write_text(serialize_translation_set(translation_set), encoding="utf-8")
        LOGGER.info("File saved: %s", path.name)
        written.append(path)
    return written
