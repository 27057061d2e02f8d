"""
Stock Kernel - inventory consumption and stock ledger engine.

Keeps ingredient stock consistent with order lifecycle transitions:
- Recipe-driven consumption calculation per order
- Transition policy deciding CONSUME / RETURN / NO-OP
- Atomic per-ingredient stock increments with an append-only ledger
- Ledger invariant auditing
"""

__version__ = "0.1.0"
