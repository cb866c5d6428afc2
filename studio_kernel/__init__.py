"""
Studio Kernel

The transactional core of the film studio simulation:
- Budget ledger with atomic check-and-debit
- Film phase state machine driven by an explicit game clock
- Casting negotiation and crew attachment
- Per-territory release scheduling
- Weekly box-office accrual
"""

__version__ = "0.1.0"
