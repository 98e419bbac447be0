"""Payment reconciliation: provider status in, unlock state out, exactly once."""

import logging
from dataclasses import dataclass
from typing import Protocol

from media_paywall.domain.errors import (
    IntentNotFound,
    InvalidTransition,
    PaymentNotFound,
    ProviderError,
)
from media_paywall.domain.models import Actor
from media_paywall.domain.payments import (
    ChargeResult,
    FailureCategory,
    Payment,
    PaymentStatus,
    ReconcileResult,
)
from media_paywall.domain.unlocks import UnlockRecord
from media_paywall.services.audit import AuditService
from media_paywall.services.payment_gateway import PaymentGateway

_logger = logging.getLogger(__name__)


class PaymentRepository(Protocol):
    """Persistence interface for payments."""

    def create_payment(self, payment: Payment) -> None:
        """Insert a pending payment row; a row with the same id is left untouched."""

    def get_payment(self, payment_id: str) -> Payment | None:
        """Return a payment by id (the checkout intent id)."""

    def get_by_transaction(self, external_transaction_id: str) -> Payment | None:
        """Return the payment carrying a provider transaction id."""

    def attach_transaction(self, payment_id: str, external_transaction_id: str) -> None:
        """Record the provider transaction id on a payment."""

    def finalize(
        self,
        payment_id: str,
        status: PaymentStatus,
        failure_category: FailureCategory | None,
        unlocks: list[UnlockRecord],
    ) -> bool:
        """Move a pending payment to a terminal status and write its unlocks.

        Both writes commit together. Returns False when the payment was no
        longer pending, in which case nothing is written.
        """

    def mark_refunded(self, payment_id: str) -> bool:
        """Move a completed payment to refunded. Returns False otherwise."""

    def list_payments(
        self, status: PaymentStatus | None, limit: int
    ) -> list[Payment]:
        """Return recent payments, newest first."""


@dataclass
class ReconciliationService:
    """Converge webhook and polling deliveries on one state machine."""

    payment_repository: PaymentRepository
    gateway: PaymentGateway
    audit_service: AuditService

    def reconcile(
        self,
        external_transaction_id: str,
        terminal_status: PaymentStatus,
        failure_category: FailureCategory | None = None,
        reference_id: str | None = None,
    ) -> ReconcileResult:
        """Apply a terminal provider status to the matching pending payment.

        The payment is found by transaction id, falling back to the intent id
        the provider echoes back as ``reference_id``. A status for a payment
        we never initiated raises PaymentNotFound.
        """
        if terminal_status not in (PaymentStatus.COMPLETED, PaymentStatus.FAILED):
            raise ValueError(f"Provider status must be terminal, got {terminal_status}")

        payment = self.payment_repository.get_by_transaction(external_transaction_id)
        if payment is None and reference_id:
            payment = self._payment_by_reference(reference_id, external_transaction_id)
        if payment is None:
            _logger.warning(
                "Reconcile for unknown transaction: transaction_id=%s reference_id=%s",
                external_transaction_id,
                reference_id,
            )
            raise PaymentNotFound(external_transaction_id)
        return self.settle(payment, terminal_status, failure_category)

    def settle(
        self,
        payment: Payment,
        terminal_status: PaymentStatus,
        failure_category: FailureCategory | None = None,
    ) -> ReconcileResult:
        """Run the terminal transition for a payment already loaded."""
        if payment.status.is_terminal:
            return ReconcileResult(
                payment_id=payment.id, status=payment.status, already_processed=True
            )

        unlocks: list[UnlockRecord] = []
        category: FailureCategory | None = None
        if terminal_status == PaymentStatus.COMPLETED:
            unlocks = payment.unlock_records()
        else:
            category = failure_category or FailureCategory.PROVIDER_ERROR

        transitioned = self.payment_repository.finalize(
            payment.id, terminal_status, category, unlocks
        )
        if not transitioned:
            current = self.payment_repository.get_payment(payment.id)
            _logger.info("Reconcile lost race: payment_id=%s", payment.id)
            return ReconcileResult(
                payment_id=payment.id,
                status=current.status if current else terminal_status,
                already_processed=True,
            )

        _logger.info(
            "Payment reconciled: payment_id=%s status=%s unlocks=%s",
            payment.id,
            terminal_status,
            len(unlocks),
        )
        return ReconcileResult(
            payment_id=payment.id,
            status=terminal_status,
            already_processed=False,
            unlocks_granted=tuple(unlocks),
        )

    def apply_charge(self, payment: Payment, charge: ChargeResult) -> ReconcileResult | None:
        """Settle a payment from a provider answer, if the answer is terminal."""
        if not charge.status.is_terminal:
            return None
        return self.settle(payment, charge.status, charge.failure_category)

    async def refresh_status(self, actor: Actor, intent_id: str) -> Payment:
        """Return the actor's payment, asking the provider while it is pending."""
        payment = self.payment_repository.get_payment(intent_id)
        if payment is None or actor.is_guest or payment.actor_id != actor.id:
            raise IntentNotFound(intent_id)
        if payment.status != PaymentStatus.PENDING or not payment.external_transaction_id:
            return payment

        try:
            charge = await self.gateway.fetch_status(payment.external_transaction_id)
        except ProviderError:
            _logger.warning("Provider status lookup failed: payment_id=%s", intent_id)
            return payment
        if self.apply_charge(payment, charge) is None:
            return payment
        return self.payment_repository.get_payment(intent_id) or payment

    def refund(self, intent_id: str) -> Payment:
        """Mark a completed payment refunded. Unlock records are kept."""
        payment = self.payment_repository.get_payment(intent_id)
        if payment is None:
            raise PaymentNotFound(intent_id)
        if payment.status != PaymentStatus.COMPLETED:
            raise InvalidTransition(
                f"Cannot refund a payment in status {payment.status}"
            )
        if not self.payment_repository.mark_refunded(intent_id):
            raise InvalidTransition(f"Payment {intent_id} changed status concurrently")
        self.audit_service.record_event(
            "payment",
            intent_id,
            "refunded",
            before={"status": str(payment.status)},
            after={"status": str(PaymentStatus.REFUNDED)},
        )
        refunded = self.payment_repository.get_payment(intent_id)
        if refunded is None:
            raise PaymentNotFound(intent_id)
        return refunded

    def list_payments(
        self, status: PaymentStatus | None = None, limit: int = 50
    ) -> list[Payment]:
        """Return recent payments for the admin view."""
        return self.payment_repository.list_payments(status, limit)

    def _payment_by_reference(
        self, reference_id: str, external_transaction_id: str
    ) -> Payment | None:
        payment = self.payment_repository.get_payment(reference_id)
        if payment is None:
            return None
        if payment.external_transaction_id not in (None, external_transaction_id):
            return None
        if payment.external_transaction_id is None:
            self.payment_repository.attach_transaction(payment.id, external_transaction_id)
        return payment
