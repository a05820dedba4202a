"""
Sales Kernel - shared foundations for the order composition engine.

- Canonical item identity and Decimal money helpers
- Typed, coded exception hierarchy
- Structured JSON logging
- Injectable clock
- SQLAlchemy base for the persistence reference adapter
"""

__version__ = "0.1.0"
