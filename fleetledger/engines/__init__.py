"""
Policy engines for fleet operations.

This module contains the engines that enforce the ledger's rules:
- Scheduling: overlap and hours-of-service checks per truck
- Billing: dispatch fees, invoices and manual adjustments
- Bookability: carrier eligibility derived from overdue invoices
- Broker assignment: accepting broker-posted loads
"""

from .base import BaseEngine
from .billing import BillingEngine, invoice_due_date, to_money
from .bookability import BookabilityPolicy, invoice_is_overdue
from .broker_assignment import BrokerLoadAssignmentWorkflow
from .scheduling import SchedulingEngine

__all__ = [
    "BaseEngine",
    "BillingEngine",
    "BookabilityPolicy",
    "BrokerLoadAssignmentWorkflow",
    "SchedulingEngine",
    "invoice_due_date",
    "invoice_is_overdue",
    "to_money",
]
