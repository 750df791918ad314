"""
Billing Kernel - monthly boleta computation for a water utility.

- Tariff, subsidy, discount, fine and reconnection resolution
- Half-up rounding to whole pesos, IVA split on the taxable base
- Exactly-once claiming of fines and reconnections
- Folio allocation from a locked counter row
"""

__version__ = "0.1.0"
