"""
Expense Ledger - Source Package

A household expense ledger kept in a spreadsheet: one sheet per month,
purchases grouped into week blocks with running totals, and reports
built from those sheets.

DESIGN PRINCIPLES:
1. The spreadsheet is the only state; positions are always re-scanned
2. Validate everything before the first write
3. Totals are computed here and written as plain values
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Ledger Team"
