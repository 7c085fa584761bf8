"""
Representación impresa de una factura (PDF) con reportlab.

Dos diseños: comprobante en papel (serie B) y e-CF (serie E). El e-CF
agrega código de seguridad y QR; ambos son marcadores visuales, ver
`dgii_fiscal.application.verification`.
"""

from __future__ import annotations

from datetime import date, datetime
from io import BytesIO
from xml.sax.saxutils import escape

import structlog
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm, inch
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from dgii_fiscal.application.config import DocumentsConfig, IssuerConfig
from dgii_fiscal.application.dtos import PDF_MIME, ExportFile
from dgii_fiscal.application.verification import (
    encode_payload,
    security_code,
    verification_payload,
)
from dgii_fiscal.domain.entities import Invoice, InvoiceStatus
from dgii_fiscal.domain.tax_tables import is_electronic, isr_retention_label, ncf_type_label
from dgii_fiscal.domain.value_objects import Money

logger = structlog.get_logger()


def _rgb(r: int, g: int, b: int) -> colors.Color:
    return colors.Color(r / 255, g / 255, b / 255)


CORPORATE_BLUE = _rgb(25, 91, 166)
LIGHT_GREY = colors.Color(0.95, 0.95, 0.95)

STATUS_BADGES: dict[InvoiceStatus, tuple[str, colors.Color]] = {
    InvoiceStatus.PENDING: ("PENDIENTE DE PAGO", _rgb(230, 126, 34)),
    InvoiceStatus.PAID: ("PAGADA", _rgb(39, 174, 96)),
    InvoiceStatus.OVERDUE: ("VENCIDA", _rgb(192, 57, 43)),
    InvoiceStatus.CANCELLED: ("ANULADA", _rgb(127, 140, 141)),
}

PLACEHOLDER_NOTICE = (
    "Código de seguridad y QR de carácter ilustrativo. "
    "No constituyen firma digital ni validación de la DGII."
)

_QR_SIZE = 1.3 * inch


class InvoiceDocumentRenderer:
    """Genera el PDF de una factura ya calculada. No modifica la factura."""

    def __init__(self, issuer: IssuerConfig, documents: DocumentsConfig | None = None) -> None:
        self._issuer = issuer
        self._documents = documents or DocumentsConfig()
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self) -> None:
        self.styles.add(ParagraphStyle(
            name="DocTitle",
            parent=self.styles["Heading1"],
            fontSize=18,
            textColor=CORPORATE_BLUE,
            alignment=TA_CENTER,
            spaceAfter=2,
        ))
        self.styles.add(ParagraphStyle(
            name="DocSubtitle",
            parent=self.styles["Normal"],
            fontSize=10,
            textColor=colors.grey,
            alignment=TA_CENTER,
            spaceAfter=12,
        ))
        self.styles.add(ParagraphStyle(
            name="IssuerName",
            parent=self.styles["Heading2"],
            fontSize=14,
            textColor=CORPORATE_BLUE,
            spaceAfter=4,
        ))
        self.styles.add(ParagraphStyle(
            name="SectionTitle",
            parent=self.styles["Heading3"],
            fontSize=11,
            textColor=CORPORATE_BLUE,
            spaceBefore=10,
            spaceAfter=6,
        ))
        self.styles.add(ParagraphStyle(
            name="Small",
            parent=self.styles["Normal"],
            fontSize=8,
            leading=10,
        ))
        self.styles.add(ParagraphStyle(
            name="RightSmall",
            parent=self.styles["Normal"],
            fontSize=9,
            alignment=TA_RIGHT,
        ))
        self.styles.add(ParagraphStyle(
            name="Footer",
            parent=self.styles["Normal"],
            fontSize=8,
            textColor=colors.grey,
            alignment=TA_CENTER,
        ))

    def filename_for(self, invoice: Invoice) -> str:
        prefix = (
            self._documents.electronic_prefix
            if is_electronic(invoice.ncf_type)
            else self._documents.paper_prefix
        )
        reference = invoice.ncf or invoice.invoice_number
        return f"{prefix}_{reference}_{invoice.issue_date.strftime('%Y%m%d')}.pdf"

    def render(
        self,
        invoice: Invoice,
        generated_at: datetime | None = None,
        today: date | None = None,
    ) -> ExportFile:
        generated_at = generated_at or datetime.now()
        today = today or generated_at.date()
        electronic = is_electronic(invoice.ncf_type)

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            rightMargin=1.5 * cm,
            leftMargin=1.5 * cm,
            topMargin=1.5 * cm,
            bottomMargin=1.5 * cm,
            title=f"Factura {invoice.ncf}",
            author=self._issuer.name,
        )

        elements: list = []
        elements.extend(self._build_header(invoice, electronic))
        elements.extend(self._build_title(electronic))
        elements.extend(self._build_buyer_section(invoice))
        elements.extend(self._build_items_section(invoice))
        elements.extend(self._build_totals_section(invoice))
        elements.extend(self._build_status_section(invoice, today))
        if invoice.notes:
            elements.extend(self._build_notes_section(invoice.notes))
        if electronic:
            elements.extend(self._build_verification_section(invoice, generated_at))
        elements.extend(self._build_footer(generated_at, electronic))

        doc.build(elements)
        content = buffer.getvalue()
        filename = self.filename_for(invoice)

        logger.info(
            "invoice_pdf_rendered",
            invoice_id=invoice.id,
            ncf=invoice.ncf,
            electronic=electronic,
            filename=filename,
            size=len(content),
        )
        return ExportFile(content=content, filename=filename, mime_type=PDF_MIME)

    def _build_header(self, invoice: Invoice, electronic: bool) -> list:
        issuer = self._issuer
        issuer_block = [
            Paragraph(escape(issuer.name), self.styles["IssuerName"]),
            Paragraph(f"<b>RNC:</b> {escape(issuer.rnc)}", self.styles["Small"]),
            Paragraph(escape(issuer.address), self.styles["Small"]),
            Paragraph(f"Tel.: {escape(issuer.phone)}", self.styles["Small"]),
            Paragraph(escape(issuer.email), self.styles["Small"]),
        ]

        ncf_rows = [
            ["e-NCF" if electronic else "NCF", invoice.ncf],
            ["Tipo", f"{invoice.ncf_type} - {ncf_type_label(invoice.ncf_type)}"],
            ["Factura No.", invoice.invoice_number],
            ["Fecha emisión", invoice.issue_date.strftime("%d/%m/%Y")],
        ]
        if invoice.due_date:
            ncf_rows.append(["Vencimiento", invoice.due_date.strftime("%d/%m/%Y")])
        if electronic:
            ncf_rows.append([
                "Cód. seguridad",
                security_code(invoice.ncf, invoice.issue_date, invoice.total_amount),
            ])

        ncf_box = Table(ncf_rows, colWidths=[1.1 * inch, 1.9 * inch])
        ncf_box.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("FONTNAME", (1, 0), (1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (1, 0), (1, 0), 10),
            ("TEXTCOLOR", (1, 0), (1, 0), CORPORATE_BLUE),
            ("BOX", (0, 0), (-1, -1), 1, CORPORATE_BLUE),
            ("BACKGROUND", (0, 0), (0, -1), LIGHT_GREY),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
        ]))

        header = Table([[issuer_block, ncf_box]], colWidths=[4 * inch, 3.1 * inch])
        header.setStyle(TableStyle([
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("ALIGN", (1, 0), (1, 0), "RIGHT"),
        ]))

        return [
            header,
            Spacer(1, 0.15 * inch),
            HRFlowable(width="100%", thickness=2, color=CORPORATE_BLUE),
            Spacer(1, 0.15 * inch),
        ]

    def _build_title(self, electronic: bool) -> list:
        if electronic:
            title, subtitle = "FACTURA ELECTRÓNICA", "Comprobante Fiscal Electrónico (e-CF)"
        else:
            title, subtitle = "FACTURA", "Comprobante Fiscal (NCF)"
        return [
            Paragraph(title, self.styles["DocTitle"]),
            Paragraph(subtitle, self.styles["DocSubtitle"]),
        ]

    def _build_buyer_section(self, invoice: Invoice) -> list:
        data = [
            ["Cliente:", invoice.client.name],
            ["RNC/Cédula:", invoice.buyer_tax_id or "-"],
        ]
        table = Table(data, colWidths=[1.5 * inch, 5.6 * inch])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("BACKGROUND", (0, 0), (0, -1), LIGHT_GREY),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
            ("TOPPADDING", (0, 0), (-1, -1), 5),
        ]))
        return [
            Paragraph("Datos del cliente", self.styles["SectionTitle"]),
            table,
            Spacer(1, 0.2 * inch),
        ]

    def _build_items_section(self, invoice: Invoice) -> list:
        concept = Paragraph(escape(invoice.concept or "-"), self.styles["Normal"])
        data = [
            ["Descripción", "Monto"],
            [concept, self._money(invoice, invoice.amount)],
        ]
        table = Table(data, colWidths=[5.3 * inch, 1.8 * inch])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("BACKGROUND", (0, 0), (-1, 0), CORPORATE_BLUE),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
        ]))
        return [table, Spacer(1, 0.15 * inch)]

    def _build_totals_section(self, invoice: Invoice) -> list:
        data = [
            ["Subtotal", self._money(invoice, invoice.amount)],
            [f"ITBIS ({invoice.tax_rate.normalize():f}%)", self._money(invoice, invoice.itbis_amount)],
        ]
        if invoice.isr_retention_rate > 0:
            label = isr_retention_label(invoice.isr_retention_rate)
            data.append([
                f"Retención ISR ({invoice.isr_retention_rate.normalize():f}% - {label})",
                f"- {self._money(invoice, invoice.isr_retention_amount)}",
            ])
        data.append(["TOTAL", self._money(invoice, invoice.total_amount)])

        table = Table(data, colWidths=[3.3 * inch, 1.8 * inch], hAlign="RIGHT")
        table.setStyle(TableStyle([
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("LINEABOVE", (0, -1), (-1, -1), 1, CORPORATE_BLUE),
            ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, -1), (-1, -1), 11),
            ("TEXTCOLOR", (0, -1), (-1, -1), CORPORATE_BLUE),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]))

        elements: list = [table]
        equivalent = invoice.dop_equivalent
        if equivalent is not None and invoice.exchange_rate > 1:
            elements.append(Paragraph(
                f"Equivalente: {equivalent.format()} (tasa {invoice.exchange_rate})",
                self.styles["RightSmall"],
            ))
        elements.append(Spacer(1, 0.2 * inch))
        return elements

    def _build_status_section(self, invoice: Invoice, today: date) -> list:
        status = invoice.display_status(today)
        label, color = STATUS_BADGES[status]

        row = [label]
        if status is InvoiceStatus.PAID and invoice.paid_date:
            row.append(f"Fecha de pago: {invoice.paid_date.strftime('%d/%m/%Y')}")

        badge = Table([row], hAlign="LEFT")
        badge.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (0, 0), color),
            ("TEXTCOLOR", (0, 0), (0, 0), colors.white),
            ("FONTNAME", (0, 0), (0, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("LEFTPADDING", (0, 0), (-1, -1), 8),
            ("RIGHTPADDING", (0, 0), (-1, -1), 8),
        ]))
        return [badge, Spacer(1, 0.2 * inch)]

    def _build_notes_section(self, notes: str) -> list:
        return [
            Paragraph("Notas", self.styles["SectionTitle"]),
            Paragraph(escape(notes).replace("\n", "<br/>"), self.styles["Normal"]),
            Spacer(1, 0.2 * inch),
        ]

    def _build_verification_section(self, invoice: Invoice, signed_at: datetime) -> list:
        payload = verification_payload(invoice, self._issuer.rnc, signed_at)

        widget = QrCodeWidget(encode_payload(payload))
        x0, y0, x1, y1 = widget.getBounds()
        drawing = Drawing(
            _QR_SIZE,
            _QR_SIZE,
            transform=[_QR_SIZE / (x1 - x0), 0, 0, _QR_SIZE / (y1 - y0), 0, 0],
        )
        drawing.add(widget)

        details = [
            Paragraph(f"<b>Código de seguridad:</b> {payload['CodigoSeguridad']}", self.styles["Small"]),
            Paragraph(f"<b>Fecha de firma:</b> {payload['FechaFirma']}", self.styles["Small"]),
            Spacer(1, 4),
            Paragraph(PLACEHOLDER_NOTICE, self.styles["Small"]),
        ]
        table = Table([[drawing, details]], colWidths=[_QR_SIZE + 0.2 * inch, 5.4 * inch])
        table.setStyle(TableStyle([
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("BOX", (0, 0), (-1, -1), 0.5, colors.grey),
        ]))
        return [table, Spacer(1, 0.2 * inch)]

    def _build_footer(self, generated_at: datetime, electronic: bool) -> list:
        text = f"Generado el: {generated_at.strftime('%d/%m/%Y %H:%M')}"
        if electronic:
            text += " | Representación impresa de e-CF (ilustrativa)"
        return [
            HRFlowable(width="100%", thickness=0.5, color=colors.grey),
            Spacer(1, 0.1 * inch),
            Paragraph(text, self.styles["Footer"]),
        ]

    @staticmethod
    def _money(invoice: Invoice, amount) -> str:
        return Money(amount, invoice.currency).format()
