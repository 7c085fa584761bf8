"""Caso de uso: emitir una factura con NCF sin duplicar ni saltar secuencias."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
import uuid

import structlog

from dgii_fiscal.application.calculator import InvoiceCalculator
from dgii_fiscal.application.dtos import InvoiceDraft, TaxBreakdown
from dgii_fiscal.application.ports.invoice_repository import InvoiceRepository
from dgii_fiscal.application.sequencer import NCFSequencer
from dgii_fiscal.domain.entities import Invoice, InvoiceStatus
from dgii_fiscal.domain.exceptions import InvoiceValidationError
from dgii_fiscal.domain.tax_tables import is_known_ncf_type
from dgii_fiscal.domain.value_objects import Currency, quantize_money, to_decimal

logger = structlog.get_logger()


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class CreateInvoiceUseCase:
    repository: InvoiceRepository
    sequencer: NCFSequencer
    calculator: InvoiceCalculator = field(default_factory=InvoiceCalculator)
    id_factory: Callable[[], str] = _new_id

    def preview_ncf(self, ncf_type: str) -> str:
        """NCF para pre-llenar un borrador. Se vuelve a pedir al abrir cada borrador."""
        return self.sequencer.peek_next(ncf_type)

    def execute(self, draft: InvoiceDraft) -> Invoice:
        breakdown, exchange_rate = self._validate(draft)

        with self.sequencer.reserve(draft.ncf_type):
            self.sequencer.reconcile(
                draft.ncf_type, lambda ncf: self.repository.find_by_ncf(ncf) is not None
            )
            ncf = self.sequencer.peek_next(draft.ncf_type)
            invoice = self._build_invoice(draft, ncf, breakdown, exchange_rate)

            # Si el insert falla la excepción se propaga y el contador no avanza.
            saved = self.repository.insert(invoice)
            committed = self.sequencer.commit(draft.ncf_type)

        if committed != saved.ncf:
            # Otro proceso avanzó el contador entre el insert y el commit.
            logger.error(
                "ncf_commit_mismatch",
                ncf_type=draft.ncf_type,
                invoice_id=saved.id,
                issued_ncf=saved.ncf,
                committed_ncf=committed,
            )

        logger.info(
            "invoice_created",
            invoice_id=saved.id,
            invoice_number=saved.invoice_number,
            ncf=saved.ncf,
            total_amount=str(saved.total_amount),
            currency=saved.currency.value,
        )
        return saved

    def _validate(self, draft: InvoiceDraft) -> tuple[TaxBreakdown, Decimal]:
        errors: list[str] = []
        if not draft.invoice_number or not draft.invoice_number.strip():
            errors.append("El número de factura es obligatorio")
        if not draft.concept or not draft.concept.strip():
            errors.append("El concepto es obligatorio")
        if draft.client is None:
            errors.append("Debe seleccionar un cliente")
        if not draft.ncf_type:
            errors.append("El tipo de NCF es obligatorio")
        elif not is_known_ncf_type(draft.ncf_type):
            errors.append(f"Tipo de NCF desconocido: '{draft.ncf_type}'")
        errors.extend(self.calculator.validate_rates(draft.tax_rate, draft.isr_retention_rate))

        exchange_rate = Decimal("1")
        if draft.currency is Currency.USD:
            try:
                exchange_rate = to_decimal(draft.exchange_rate)
                if not exchange_rate.is_finite() or exchange_rate < 1:
                    errors.append(f"La tasa de cambio debe ser >= 1: {draft.exchange_rate}")
            except ValueError:
                errors.append(f"Tasa de cambio inválida: '{draft.exchange_rate}'")

        breakdown: TaxBreakdown | None = None
        try:
            breakdown = self.calculator.compute(
                draft.amount, draft.tax_rate, draft.isr_retention_rate
            )
        except InvoiceValidationError as e:
            errors.extend(e.errors)

        if errors:
            logger.warning(
                "invoice_validation_failed",
                invoice_number=draft.invoice_number,
                errors=errors,
            )
            raise InvoiceValidationError(errors)
        assert breakdown is not None
        return breakdown, exchange_rate

    def _build_invoice(
        self,
        draft: InvoiceDraft,
        ncf: str,
        breakdown: TaxBreakdown,
        exchange_rate: Decimal,
    ) -> Invoice:
        assert draft.client is not None
        rnc = "".join(ch for ch in (draft.rnc_cedula or "") if ch.isdigit()) or None
        return Invoice(
            id=self.id_factory(),
            invoice_number=draft.invoice_number.strip(),
            ncf_type=draft.ncf_type,
            ncf=ncf,
            rnc_cedula=rnc,
            client=draft.client,
            concept=draft.concept.strip(),
            notes=draft.notes or None,
            amount=quantize_money(to_decimal(draft.amount)),
            tax_rate=to_decimal(draft.tax_rate),
            isr_retention_rate=to_decimal(draft.isr_retention_rate),
            isr_retention_amount=breakdown.isr_retention_amount,
            total_amount=breakdown.total_amount,
            currency=draft.currency,
            exchange_rate=exchange_rate,
            status=InvoiceStatus.PENDING,
            issue_date=draft.issue_date or date.today(),
            due_date=draft.due_date,
            created_at=datetime.now(UTC),
        )
