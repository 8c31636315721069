"""
Audit logging for order and stock events.

Every event that moves money or stock between tenants is written as one JSON
document to the "audit" logger so it can be shipped to centralized logging.

LOGGING SENSITIVE DATA: the delivery OTP is never written, only the fact
that a verification failed.
"""
import logging
import json
from typing import Any, Dict, List, Optional

from pharmaledger.core.clock import utcnow

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


class AuditLog:
    """Central audit logging for cross-tenant order and ledger events."""

    @staticmethod
    def _emit(entry: Dict[str, Any], level: int = logging.INFO):
        entry = {"timestamp": utcnow().isoformat(), **entry}
        audit_logger.log(level, json.dumps(entry, default=str))

    @staticmethod
    def log_order_placed(order_id: int, order_number: str, buyer_id: int, seller_id: int, total_amount):
        AuditLog._emit({
            "event_type": "order.placed",
            "order_id": order_id,
            "order_number": order_number,
            "buyer_id": buyer_id,
            "seller_id": seller_id,
            "total_amount": total_amount,
        })

    @staticmethod
    def log_order_transition(order_id: int, from_status: str, to_status: str, actor_id: Optional[int] = None):
        """
        Usage:
            AuditLog.log_order_transition(12, "SHIPPED", "DELIVERED", actor_id=3)
        """
        AuditLog._emit({
            "event_type": "order.transition",
            "order_id": order_id,
            "from_status": from_status,
            "to_status": to_status,
            "actor_id": actor_id,
        })

    @staticmethod
    def log_assignment(order_id: int, agent_id: Optional[str], actor_id: Optional[int] = None):
        AuditLog._emit({
            "event_type": "order.assigned" if agent_id else "order.unassigned",
            "order_id": order_id,
            "agent_id": agent_id,
            "actor_id": actor_id,
        })

    @staticmethod
    def log_otp_failure(order_id: int, actor_id: Optional[int] = None):
        """
        Failed delivery confirmations. No lockout is applied; this trail is
        what a reviewer uses to spot guessing.
        """
        AuditLog._emit({
            "event_type": "order.otp_failed",
            "order_id": order_id,
            "actor_id": actor_id,
        }, level=logging.WARNING)

    @staticmethod
    def log_stock_transfer(order_id: int, seller_id: int, buyer_id: int, lines: List[Dict[str, Any]]):
        AuditLog._emit({
            "event_type": "stock.transfer",
            "order_id": order_id,
            "seller_id": seller_id,
            "buyer_id": buyer_id,
            "lines": lines,
        })

    @staticmethod
    def log_allocation(tenant_id: int, product_id: int, quantity: int, takes: List[Dict[str, int]]):
        AuditLog._emit({
            "event_type": "stock.allocated",
            "tenant_id": tenant_id,
            "product_id": product_id,
            "quantity": quantity,
            "batches": takes,
        })

    @staticmethod
    def log_access_denied(action: str, resource_type: str, resource_id: int, tenant_id: int, reason: str):
        """
        Usage:
            AuditLog.log_access_denied("transition", "order", 456, 1, "Not the seller")
        """
        AuditLog._emit({
            "event_severity": "WARNING",
            "event_type": "access_denied",
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "tenant_id": tenant_id,
            "reason": reason,
        }, level=logging.WARNING)
