"""
Base Tabular Data Source

Every spreadsheet-like backend the sync pass can read from implements
fetch_tabs(). The orchestrator retries this call and nothing else.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence


@dataclass
class TabData:
    """One tab/range: header row plus data rows keyed by header."""
    headers: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)


class TabularDataSource(ABC):
    """Read-only access to named tabs of an external tabular dataset"""

    @abstractmethod
    async def fetch_tabs(self, source_id: str, tab_names: Sequence[str]) -> Dict[str, TabData]:
        """
        Read every requested tab of one source.

        Args:
            source_id: External dataset identifier (e.g. spreadsheet id)
            tab_names: Tab or range names, in configuration order

        Returns:
            Mapping of tab name to its data, in the requested order

        Raises:
            DataSourceError: transport or authorization failure. The sync
                pass retries only DataSourceError and transport errors
                (ConnectionError, TimeoutError, OSError); implementations
                should wrap any other retryable failure in DataSourceError.
        """
        pass


def values_to_tab(values: Sequence[Sequence[Any]]) -> TabData:
    """
    Turn a raw 2D value grid (first row = headers) into keyed rows.

    Header names are trimmed; columns with a blank header are ignored.
    Short rows are padded with None. Completely blank rows are dropped.
    """
    if not values:
        return TabData()

    headers = [str(h).strip() if h is not None else "" for h in values[0]]
    rows = []
    for raw in values[1:]:
        if not raw or all(cell is None or cell == "" for cell in raw):
            continue
        row = {}
        for index, header in enumerate(headers):
            if not header:
                continue
            row[header] = raw[index] if index < len(raw) else None
        rows.append(row)

    return TabData(headers=headers, rows=rows)
