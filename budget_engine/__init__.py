"""
Budget Engine - Source Package

The monthly budget allocation engine behind a personal-finance dashboard.
For a selected calendar month it works out how much has been allocated and
spent per category, reconciles that against income and fixed obligations
coming from other subsystems, and seeds an empty month from the month the
user was just looking at.

DESIGN PRINCIPLES:
1. The store is the source of truth - every mutation ends in a full reload
2. Derived numbers are pure functions of immutable snapshots
3. A failing collaborator degrades a figure, never the dashboard
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Engine Team"
