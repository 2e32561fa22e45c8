"""
Pharmacy Kernel - inventory consistency core

A transactional stock-ledger system with:
- Atomic stock movements (row-locked read, write, audit append)
- Append-only inventory log per product
- Quantity-derived product status
- Read-side product directory (low stock, expiring soon)
"""

__version__ = "0.1.0"
