"""perfsync - spreadsheet performance metrics sync"""

__version__ = "0.3.0"
