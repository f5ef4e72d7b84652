"""
Excel Batch Upload Client

Submits transaction spreadsheets to the excel upload backend, reconciles
per-row outcomes and manages the resulting batches.
"""

__version__ = "1.0.0"
