"""
Cost Manager - Core Package

Local, embedded storage for personal expense records plus a reporting
engine that filters them by month and converts them into one currency.

DESIGN PRINCIPLES:
1. Records are immutable; the store stamps their time
2. Reports are pure functions of stored costs and a rate table
3. Fail early, fail visibly: rate problems stop a report before it starts
4. The only silent defaults are documented ones (missing rate → 1)
5. Storage layer is swappable
"""

__version__ = "1.0.0"
