"""Header Mapper: maps header names to their position in the original header row.

Blank header cells are left out of the map but still occupy a position, so a
header registered after a blank keeps its true column index. Reading
row[index] therefore always returns the cell that sits under that header,
even when the export has empty spacer columns.
"""

from typing import Any, Optional


def fold_header(name: str) -> str:
    """Comparison form of a header: trimmed, inner whitespace collapsed, lower-cased."""
    return " ".join(name.split()).lower()


def _header_text(cell: Any) -> str:
    if cell is None:
        return ""
    return str(cell).strip()


class ColumnMap:
    """Case-insensitive header name → original column index mapping."""

    def __init__(self, index_by_name: Optional[dict[str, int]] = None):
        self._index_by_name: dict[str, int] = dict(index_by_name or {})

    @classmethod
    def from_header_row(cls, headers: list[Any]) -> "ColumnMap":
        """Build the map from a raw header row.

        Duplicate names (after trimming) overwrite earlier ones, so the last
        column carrying a name wins.
        """
        index_by_name: dict[str, int] = {}
        for i, cell in enumerate(headers):
            name = _header_text(cell)
            if name:
                index_by_name[name] = i
        return cls(index_by_name)

    def resolve(self, name: str) -> Optional[int]:
        """Return the original column index for a header name, or None.

        Matching ignores case and surrounding/repeated whitespace. If several
        registered headers differ only by case, the one registered first wins.
        """
        wanted = fold_header(name)
        for header, index in self._index_by_name.items():
            if fold_header(header) == wanted:
                return index
        return None

    def has(self, name: str) -> bool:
        return self.resolve(name) is not None

    def cell(self, row: list[Any], name: str) -> Any:
        """Return the cell under the named header, or None if absent / row too short."""
        index = self.resolve(name)
        if index is None or index >= len(row):
            return None
        return row[index]

    def names(self) -> list[str]:
        return list(self._index_by_name)

    def as_dict(self) -> dict[str, int]:
        return dict(self._index_by_name)

    def __len__(self) -> int:
        return len(self._index_by_name)

    def __repr__(self) -> str:
        return f"ColumnMap({self._index_by_name!r})"
