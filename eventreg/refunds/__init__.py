"""
Module 'refunds': remboursements initiés par un administrateur ou la finance.
"""

from .service import issue_refund, REFUND_ROLES

__all__ = [
    "issue_refund",
    "REFUND_ROLES",
]
