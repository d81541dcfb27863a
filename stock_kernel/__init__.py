"""
Stock Kernel

Unit-of-measure aware inventory ledger with:
- Weighted-average cost per (warehouse, bin, item)
- Row-locked read-modify-write stock deltas
- Append-only movement log
- Never-negative on-hand quantities
"""

__version__ = "0.1.0"
