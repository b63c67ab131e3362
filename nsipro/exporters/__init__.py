"""
Export parsed ``.nsipro`` records.

Records are nested trees; :py:mod:`~nsipro.exporters.tabulate` flattens each
one into a single table row, and :py:mod:`~nsipro.exporters.writers` writes
rows to CSV or whole records to JSON.
"""

from nsipro.exporters.tabulate import tabulate_record, tabulate_records
from nsipro.exporters.writers import write_csv, write_json

__all__ = ["tabulate_record", "tabulate_records", "write_csv", "write_json"]
