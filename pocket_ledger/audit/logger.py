"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Traceability of how each balance came to be
2. Debugging capability when a wallet looks wrong
3. A history the user can browse next to their ledger

The audit logger:
- Is async so it fits the ledger service's flows
- Gracefully handles failures (a failed audit write never undoes a ledger write)
- Supports correlation IDs to trace the events of one user action
"""

from typing import Optional, Sequence
from uuid import UUID, uuid4

import structlog

from pocket_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from pocket_ledger.models.ledger import Transaction, Wallet
from pocket_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit storage backend (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("pocket_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # The ledger write already happened; only report the audit miss
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_wallet_created(
        self,
        wallet: Wallet,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log wallet creation."""
        await self.log(AuditEventBuilder.wallet_created(
            wallet_id=wallet.id,
            name=wallet.name,
            initial_balance=str(wallet.initial_balance),
            correlation_id=correlation_id,
        ))

    async def log_wallet_updated(
        self,
        wallet_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log wallet metadata change."""
        await self.log(AuditEventBuilder.wallet_updated(
            wallet_id=wallet_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    async def log_wallet_deleted(
        self,
        wallet_id: str,
        policy: str,
        affected_transactions: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log wallet deletion and how its transactions were handled."""
        await self.log(AuditEventBuilder.wallet_deleted(
            wallet_id=wallet_id,
            policy=policy,
            affected_transactions=affected_transactions,
            correlation_id=correlation_id,
        ))

    async def log_transaction_created(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a single appended transaction."""
        await self.log(AuditEventBuilder.transaction_created(
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=str(transaction.amount),
            category=transaction.category,
            wallet_id=transaction.wallet_id,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        transaction_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_transfer_completed(
        self,
        legs: Sequence[Transaction],
        from_wallet_id: str,
        to_wallet_id: str,
        amount: str,
        fee: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transfer as one event carrying every leg id."""
        await self.log(AuditEventBuilder.transfer_completed(
            batch_id=legs[0].batch_id or "",
            from_wallet_id=from_wallet_id,
            to_wallet_id=to_wallet_id,
            amount=amount,
            fee=fee,
            leg_ids=[leg.id for leg in legs],
            correlation_id=correlation_id,
        ))

    async def log_balance_reconciled(
        self,
        wallet_id: str,
        previous_balance: str,
        actual_balance: str,
        adjustment_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log reconciliation (adjustment_id is None when nothing changed)."""
        await self.log(AuditEventBuilder.balance_reconciled(
            wallet_id=wallet_id,
            previous_balance=previous_balance,
            actual_balance=actual_balance,
            adjustment_id=adjustment_id,
            correlation_id=correlation_id,
        ))

    async def log_operation_rejected(
        self,
        operation: str,
        reason: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an operation the ledger refused."""
        await self.log(AuditEventBuilder.operation_rejected(
            operation=operation,
            reason=reason,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., a transfer).
    Pass it through all subsequent operations.
    """
    return uuid4()
