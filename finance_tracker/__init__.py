"""
Personal Finance Tracker - Source Package

A month-by-month household finance ledger: income, expenses, budgets,
debts and savings goals, with AI-assisted insights that fall back to
local rules when the AI service is unavailable.

DESIGN PRINCIPLES:
1. The ledger is the source of truth; the AI only advises
2. Fail early, fail visibly
3. No silent corrections
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Finance Tracker Team"
