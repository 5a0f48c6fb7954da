"""
InvoiceFlow - Invoice PDF Service

Generates PDF invoices with ReportLab.

Features:
- Company block, with white-label colors for agency users
- Bill-to details
- Items table, with the hours column only when hours are enabled
- Totals with tax and discount lines only when enabled
- Notes, terms and active payment methods
"""

import io
import logging
from decimal import Decimal
from typing import Any, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.enums import TA_RIGHT
from reportlab.platypus import (
    SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer,
)

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.company import CompanyInfo, WhiteLabelSettings
from app.models.invoice import DiscountType, InvoiceStatus
from app.models.payment_method import PaymentMethod
from app.services.invoice_totals import InvoiceTotals, totals_for_invoice
from app.models.user import User
from app.services.payment_method_service import PaymentMethodService, describe_payment_method

logger = logging.getLogger(__name__)


DEFAULT_PRIMARY = "#1E40AF"


def format_money(amount: Decimal, currency: str) -> str:
    """Format an amount with its currency code, e.g. 'USD 1,250.00'."""
    return f"{currency} {Decimal(amount):,.2f}"


def format_quantity(value: Optional[Decimal]) -> str:
    if value is None:
        return "-"
    return f"{Decimal(value).normalize():f}"


class InvoicePDFService:
    """Service for generating PDF invoices."""

    def __init__(
        self,
        company: Optional[CompanyInfo] = None,
        white_label: Optional[WhiteLabelSettings] = None,
        payment_methods: Optional[List[PaymentMethod]] = None,
    ):
        self.company = company
        self.white_label = white_label
        self.payment_methods = [m for m in (payment_methods or []) if m.is_active]

        self.primary_color = colors.HexColor(
            white_label.primary_color if white_label and white_label.primary_color else DEFAULT_PRIMARY
        )

    @property
    def hide_branding(self) -> bool:
        return bool(self.white_label and self.white_label.hide_branding)

    def generate_invoice_pdf(self, invoice: Any) -> bytes:
        """
        Generate a PDF for an invoice.

        Totals are recomputed from the invoice items rather than read
        from the stored columns.

        Args:
            invoice: Invoice row with items loaded

        Returns:
            PDF bytes
        """
        totals = totals_for_invoice(invoice)

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=20*mm,
            leftMargin=20*mm,
            topMargin=20*mm,
            bottomMargin=20*mm,
            title=f"Invoice {invoice.invoice_number}",
        )

        styles = getSampleStyleSheet()

        title_style = ParagraphStyle(
            'InvoiceTitle',
            parent=styles['Heading1'],
            fontSize=24,
            textColor=self.primary_color,
            spaceAfter=12,
        )

        heading_style = ParagraphStyle(
            'InvoiceHeading',
            parent=styles['Heading2'],
            fontSize=13,
            textColor=self.primary_color,
            spaceBefore=12,
            spaceAfter=6,
        )

        normal_style = ParagraphStyle(
            'InvoiceNormal',
            parent=styles['Normal'],
            fontSize=10,
            spaceAfter=4,
        )

        right_style = ParagraphStyle(
            'InvoiceRight',
            parent=styles['Normal'],
            fontSize=10,
            alignment=TA_RIGHT,
        )

        elements = []

        elements.append(self._build_header(styles, title_style))
        elements.append(Spacer(1, 16))

        status_color = colors.green if invoice.status == InvoiceStatus.PAID else colors.orange
        elements.append(Paragraph("INVOICE", title_style))
        elements.append(Paragraph(
            f'<font color="{status_color.hexval()}">{invoice.status.value.upper()}</font>',
            right_style
        ))
        elements.append(Spacer(1, 10))

        elements.append(self._build_info_section(invoice, normal_style))
        elements.append(Spacer(1, 16))

        elements.append(Paragraph("Items", heading_style))
        elements.append(self._build_items_table(invoice))
        elements.append(Spacer(1, 12))

        elements.append(self._build_totals_section(invoice, totals))
        elements.append(Spacer(1, 16))

        if invoice.notes:
            elements.append(Paragraph("Notes", heading_style))
            elements.append(Paragraph(self._text(invoice.notes), normal_style))

        if invoice.terms:
            elements.append(Paragraph("Terms & Conditions", heading_style))
            elements.append(Paragraph(self._text(invoice.terms), normal_style))

        if self.payment_methods and invoice.status != InvoiceStatus.PAID:
            elements.append(Paragraph("Payment Methods", heading_style))
            elements.extend(self._build_payment_section(normal_style))

        elements.append(Spacer(1, 24))
        elements.append(self._build_footer(normal_style))

        doc.build(elements)

        pdf_bytes = buffer.getvalue()
        buffer.close()

        logger.debug(f"Rendered PDF for invoice {invoice.invoice_number} ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    @staticmethod
    def _text(value: Optional[str]) -> str:
        """Escape user text for Paragraph markup and keep line breaks."""
        return escape(value or "").replace("\n", "<br/>")

    def _build_header(self, styles, title_style):
        """Build header with company info."""
        if self.company is None:
            name = settings.app_name
            lines: List[str] = []
        else:
            name = self.company.business_name
            lines = list(self.company.address_lines)
            if self.company.company_email:
                lines.append(f"Email: {self.company.company_email}")
            if self.company.phone:
                lines.append(f"Phone: {self.company.phone}")
            if self.company.website:
                lines.append(self.company.website)

        header_data = [[Paragraph(f"<b>{self._text(name)}</b>", title_style)]]
        for line in lines:
            header_data.append([Paragraph(self._text(line), styles['Normal'])])

        header_table = Table(header_data, colWidths=[500])
        header_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))

        return header_table

    def _build_info_section(self, invoice: Any, normal_style):
        """Build invoice meta and bill-to section."""
        invoice_info = f"<b>Invoice Number:</b> {self._text(invoice.invoice_number)}<br/>"
        if invoice.created_at:
            invoice_info += f"<b>Invoice Date:</b> {invoice.created_at.strftime('%B %d, %Y')}<br/>"
        if invoice.due_date:
            invoice_info += f"<b>Due Date:</b> {invoice.due_date.strftime('%B %d, %Y')}<br/>"
        if invoice.estimated_completion:
            invoice_info += f"<b>Est. Completion:</b> {invoice.estimated_completion.strftime('%B %d, %Y')}<br/>"

        customer_info = f"<b>Bill To:</b><br/>{self._text(invoice.client_name)}<br/>"
        if invoice.client_business_name:
            customer_info += f"{self._text(invoice.client_business_name)}<br/>"
        customer_info += f"{self._text(invoice.client_email)}<br/>"
        if invoice.client_phone:
            customer_info += f"{self._text(invoice.client_phone)}<br/>"
        if invoice.client_address:
            customer_info += f"{self._text(invoice.client_address)}<br/>"

        info_table = Table(
            [[Paragraph(invoice_info, normal_style), Paragraph(customer_info, normal_style)]],
            colWidths=[250, 250],
        )
        info_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (0, 0), 'LEFT'),
            ('ALIGN', (1, 0), (1, 0), 'RIGHT'),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))

        return info_table

    def _build_items_table(self, invoice: Any):
        """Build items table."""
        styles = getSampleStyleSheet()
        cell_style = ParagraphStyle('ItemCell', parent=styles['Normal'], fontSize=9)

        if invoice.hours_enabled:
            data = [['Item', 'Hours', 'Rate', 'Amount']]
            col_widths = [250, 60, 95, 95]
        else:
            data = [['Item', 'Price', 'Amount']]
            col_widths = [310, 95, 95]

        for item in invoice.items:
            label = f"<b>{self._text(item.title)}</b>"
            if item.description:
                label += f"<br/>{self._text(item.description)}"
            row = [Paragraph(label, cell_style)]
            if invoice.hours_enabled:
                row.append(format_quantity(item.hours))
            row.append(format_money(item.rate, invoice.currency))
            row.append(format_money(item.subtotal, invoice.currency))
            data.append(row)

        table = Table(data, colWidths=col_widths)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), self.primary_color),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 10),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 10),
            ('TOPPADDING', (0, 0), (-1, 0), 10),

            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 1), (-1, -1), 8),
            ('TOPPADDING', (0, 1), (-1, -1), 8),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),

            ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),

            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f8f9fa')]),
        ]))

        return table

    def _build_totals_section(self, invoice: Any, totals: InvoiceTotals):
        """Build totals section. Tax and discount rows only when enabled."""
        currency = invoice.currency
        totals_data = [['', 'Subtotal:', format_money(totals.subtotal, currency)]]

        if invoice.tax_enabled:
            totals_data.append([
                '', f"Tax ({format_quantity(invoice.tax_rate)}%):", format_money(totals.tax_amount, currency)
            ])

        if invoice.discount_enabled:
            label = "Discount:"
            if invoice.discount_type == DiscountType.PERCENTAGE:
                label = f"Discount ({format_quantity(invoice.discount_value)}%):"
            totals_data.append(['', label, f"-{format_money(totals.discount_amount, currency)}"])

        totals_data.append(['', 'Total:', format_money(totals.total, currency)])

        totals_table = Table(totals_data, colWidths=[280, 110, 110])
        totals_table.setStyle(TableStyle([
            ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
            ('FONTNAME', (1, -1), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TOPPADDING', (0, 0), (-1, -1), 5),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
            ('LINEABOVE', (1, -1), (-1, -1), 1, colors.black),
        ]))

        return totals_table

    def _build_payment_section(self, normal_style) -> list:
        """Build payment methods section."""
        elements = []
        for method in self.payment_methods:
            lines = [f"<b>{self._text(method.name)}</b>"]
            lines.extend(self._text(line) for line in describe_payment_method(method))
            elements.append(Paragraph("<br/>".join(lines), normal_style))
        return elements

    def _build_footer(self, normal_style):
        """Build invoice footer."""
        footer_text = "Thank you for your business!"
        if self.company and self.company.company_email:
            footer_text += f"<br/>Questions? Contact us at {self._text(self.company.company_email)}"
        if not self.hide_branding:
            footer_text += f"<br/><font size=8 color=grey>Generated with {settings.app_name}</font>"

        return Paragraph(f'<para align="center">{footer_text}</para>', normal_style)


async def render_invoice_pdf(db: AsyncSession, invoice: Any, owner: User) -> bytes:
    """
    Render an invoice with its owner's company info and active payment
    methods. White-label settings apply only while the owner is on the
    agency plan.
    """
    company = (await db.execute(
        select(CompanyInfo).where(CompanyInfo.user_id == owner.id)
    )).scalar_one_or_none()

    white_label = None
    if owner.is_agency:
        white_label = (await db.execute(
            select(WhiteLabelSettings).where(WhiteLabelSettings.user_id == owner.id)
        )).scalar_one_or_none()

    methods = await PaymentMethodService(db).get_methods_for_user(owner.id, active_only=True)

    service = InvoicePDFService(company=company, white_label=white_label, payment_methods=methods)
    return service.generate_invoice_pdf(invoice)
