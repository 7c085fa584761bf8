"""Excepciones de negocio del subsistema fiscal."""


class FiscalError(Exception):
    """Base para errores del subsistema fiscal."""


class InvoiceValidationError(FiscalError):
    """La factura no pasó validación; no se aplicó ningún cambio."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))


class UnknownNcfTypeError(FiscalError):
    """Código de tipo de NCF fuera de la tabla DGII."""

    def __init__(self, ncf_type: str) -> None:
        self.ncf_type = ncf_type
        super().__init__(f"Tipo de NCF desconocido: '{ncf_type}'")


class InvalidTransitionError(FiscalError):
    """Transición de estado no permitida."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Transición no permitida: {current} → {target}")


class InvoiceNotFoundError(FiscalError):
    def __init__(self, invoice_id: str) -> None:
        self.invoice_id = invoice_id
        super().__init__(f"Factura no encontrada: {invoice_id}")


class EmptyReportError(FiscalError):
    """Se pidió formatear un reporte sin registros."""

    def __init__(self, report_type: str, period_code: str) -> None:
        self.report_type = report_type
        self.period_code = period_code
        super().__init__(f"Sin registros para el reporte {report_type} del período {period_code}")


class ImmutableFieldError(FiscalError):
    """Se intentó reescribir datos fiscales de una factura ya emitida."""

    def __init__(self, invoice_id: str, fields: list[str]) -> None:
        self.invoice_id = invoice_id
        self.fields = fields
        super().__init__(
            f"La factura {invoice_id} ya fue emitida; no se puede modificar: {', '.join(fields)}"
        )


class AmountOutOfRangeError(FiscalError):
    """El monto no cabe en el ancho fijo del campo del reporte."""

    def __init__(self, ncf: str, field_name: str, amount: object) -> None:
        self.ncf = ncf
        self.field_name = field_name
        self.amount = amount
        super().__init__(
            f"Monto fuera de rango para {field_name} en {ncf}: {amount}"
        )
