"""Services for the hiring kernel (write side)."""

from hiring_kernel.services.budget_ledger import BudgetLedger, LedgerReconciliation
from hiring_kernel.services.request_store import RequestStore
from hiring_kernel.services.user_service import UserInfo, UserService
from hiring_kernel.services.workflow_service import WorkflowService

__all__ = [
    "BudgetLedger",
    "LedgerReconciliation",
    "RequestStore",
    "UserInfo",
    "UserService",
    "WorkflowService",
]
