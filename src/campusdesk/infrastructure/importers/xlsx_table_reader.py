from __future__ import annotations

import io
import zipfile
from collections.abc import Iterable, Mapping
from xml.etree import ElementTree as ET

from campusdesk.core.errors import SpreadsheetDecodeError

SHARED_STRINGS_MEMBER = "xl/sharedStrings.xml"
PREFERRED_SHEET_MEMBER = "xl/worksheets/sheet1.xml"
WORKSHEET_PREFIX = "xl/worksheets/"

XLSX_PARSE_FAILED = "failed to parse xlsx file"


def cell_ref_to_col_index(cell_ref: str | None) -> int:
    """Return the zero-based column of a cell reference such as ``"AB12"``.

    Leading letters are read as a base-26 numeral (A=1 .. Z=26) and scanning
    stops at the first non-letter. A reference with no leading letters maps
    to column 0.
    """
    total = 0
    for ch in str(cell_ref or ""):
        if not ("A" <= ch <= "Z" or "a" <= ch <= "z"):
            break
        total = total * 26 + (ord(ch.upper()) - ord("A") + 1)
    if total == 0:
        return 0
    return total - 1


def select_worksheet_member(member_names: Iterable[str]) -> str | None:
    names = set(member_names)
    if PREFERRED_SHEET_MEMBER in names:
        return PREFERRED_SHEET_MEMBER
    candidates = sorted(
        name for name in names if name.startswith(WORKSHEET_PREFIX) and name.endswith(".xml")
    )
    return candidates[0] if candidates else None


def read_xlsx_members(data: bytes) -> dict[str, bytes]:
    """Load every archive member into memory, keyed by member name."""
    try:
        with zipfile.ZipFile(io.BytesIO(data), "r") as archive:
            return {info.filename: archive.read(info) for info in archive.infolist() if not info.is_dir()}
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError, RuntimeError, NotImplementedError) as exc:
        raise SpreadsheetDecodeError(XLSX_PARSE_FAILED) from exc


def parse_shared_strings(payload: bytes | None) -> list[str]:
    """Decode the shared-string pool; an absent member is an empty pool."""
    if payload is None:
        return []
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        raise SpreadsheetDecodeError(XLSX_PARSE_FAILED) from exc

    values: list[str] = []
    for item in root:
        if _local_tag(item.tag) != "si":
            continue
        values.append(_rich_text(item))
    return values


def parse_worksheet_rows(payload: bytes, shared_strings: list[str]) -> list[list[str]]:
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        raise SpreadsheetDecodeError(XLSX_PARSE_FAILED) from exc

    rows: list[list[str]] = []
    for sheet_data in _children(root, "sheetData"):
        for row_node in _children(sheet_data, "row"):
            rows.append(_decode_row(row_node, shared_strings))
    return rows


def parse_xlsx_rows(data: bytes) -> list[list[str]]:
    """Decode the first worksheet of an ``.xlsx`` payload into padded rows."""
    members = read_xlsx_members(data)
    return parse_xlsx_members(members)


def parse_xlsx_members(members: Mapping[str, bytes]) -> list[list[str]]:
    shared_strings = parse_shared_strings(members.get(SHARED_STRINGS_MEMBER))
    sheet_member = select_worksheet_member(members.keys())
    if sheet_member is None:
        raise SpreadsheetDecodeError("xlsx has no worksheets")
    return parse_worksheet_rows(members[sheet_member], shared_strings)


def _decode_row(row_node: ET.Element, shared_strings: list[str]) -> list[str]:
    values: dict[int, str] = {}
    max_col = -1
    for cell_node in _children(row_node, "c"):
        col = cell_ref_to_col_index(cell_node.attrib.get("r"))
        max_col = max(max_col, col)
        values[col] = _cell_value(cell_node, shared_strings)
    if max_col < 0:
        return []
    out = [""] * (max_col + 1)
    for col, value in values.items():
        out[col] = value.strip()
    return out


def _cell_value(cell_node: ET.Element, shared_strings: list[str]) -> str:
    cell_type = (cell_node.attrib.get("t") or "").strip()
    if cell_type == "inlineStr":
        for child in _children(cell_node, "is"):
            return _rich_text(child)
        return ""

    raw = ""
    for child in _children(cell_node, "v"):
        raw = child.text or ""
        break
    if cell_type == "s":
        try:
            idx = int(raw.strip())
        except ValueError:
            return raw
        if 0 <= idx < len(shared_strings):
            return shared_strings[idx]
    return raw


def _rich_text(node: ET.Element) -> str:
    # A direct <t> wins; otherwise concatenate the <t> of every <r> run.
    for child in _children(node, "t"):
        if child.text:
            return child.text
    parts: list[str] = []
    for run in _children(node, "r"):
        for text_node in _children(run, "t"):
            parts.append(text_node.text or "")
    return "".join(parts)


def _children(node: ET.Element, local_name: str):
    for child in node:
        if _local_tag(child.tag) == local_name:
            yield child


def _local_tag(tag: str) -> str:
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag
