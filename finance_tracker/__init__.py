"""
Finance Tracker - Source Package

Personal finance ledger for expenses and bills, with due-date tracking
and period-over-period reports.

DESIGN PRINCIPLES:
1. Every entry belongs to exactly one owner
2. Fail early, fail visibly
3. Status changes are explicit and auditable
4. Reports are recomputed from stored entries on every request
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
