"""Reports module for exporting extraction results.

Provides:
- results_to_dataframe: One row per extracted item
- export_results: CSV, Excel and JSON output
"""

from .export import COLUMNS, item_to_row, results_to_dataframe, export_results

__all__ = [
    "COLUMNS",
    "item_to_row",
    "results_to_dataframe",
    "export_results",
]
