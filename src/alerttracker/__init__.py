"""
Alerts Tracker.

Mirrors an externally-owned alerts sheet into an annotated tracker,
derives a lifecycle group per issue, and appends approved responses back
to the sheet's comment column.
"""

__version__ = "1.0.0"
