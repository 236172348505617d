"""Tabular data source connectors"""

from perfsync.connectors.base import TabData, TabularDataSource, values_to_tab
from perfsync.connectors.google_sheets import GoogleSheetsClient

__all__ = ["TabData", "TabularDataSource", "values_to_tab", "GoogleSheetsClient"]
