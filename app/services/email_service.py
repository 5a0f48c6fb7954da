"""
InvoiceFlow - Email Service

Transactional email. Transport is simulated: messages are logged and
recorded in email_logs as sent. Agency users get a branded sender.
"""

import html
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.activity import EmailLog, EmailStatus, EmailType
from app.models.agency import ClientPortalAccess, TeamMember
from app.models.company import AgencyEmailSettings, CompanyInfo
from app.models.invoice import DiscountType, Invoice
from app.models.payment_method import PaymentMethod
from app.models.user import User
from app.services.invoice_totals import totals_for_invoice
from app.services.payment_method_service import describe_payment_method

logger = logging.getLogger(__name__)


class EmailProvider:
    """Email provider types."""
    MOCK = "mock"


@dataclass
class EmailMessage:
    """Email message data structure."""
    to: List[str]
    subject: str
    body_text: str
    body_html: Optional[str] = None
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    reply_to: Optional[str] = None


@dataclass
class SenderIdentity:
    """Who an outgoing email appears to come from."""
    from_email: str
    from_name: str
    reply_to: Optional[str] = None
    signature: Optional[str] = None
    extra: dict = field(default_factory=dict)


def infer_email_type(subject: str) -> EmailType:
    """Classify an email by keywords in its subject."""
    lowered = subject.lower()
    if "invoice" in lowered:
        return EmailType.INVOICE
    if "welcome" in lowered:
        return EmailType.WELCOME
    if "password" in lowered or "reset" in lowered:
        return EmailType.PASSWORD_RESET
    return EmailType.NOTIFICATION


def get_sender_identity(
    user: User,
    company: Optional[CompanyInfo] = None,
    email_settings: Optional[AgencyEmailSettings] = None,
) -> SenderIdentity:
    """
    Resolve the sender for a user's outgoing mail.

    Agency users with configured SMTP settings send as those settings;
    otherwise agency users with a custom domain send from
    invoices@<domain> under their business name with their signature.
    Everyone else sends from the platform address.
    """
    business_name = company.business_name if company else user.name

    if user.is_agency:
        signature = company.email_signature if company else None
        if email_settings is not None and email_settings.is_active:
            return SenderIdentity(
                from_email=email_settings.from_email,
                from_name=email_settings.from_name,
                reply_to=email_settings.reply_to,
                signature=signature,
            )
        if company is not None and company.custom_email_domain:
            return SenderIdentity(
                from_email=f"invoices@{company.custom_email_domain}",
                from_name=business_name,
                reply_to=company.company_email,
                signature=signature,
            )

    return SenderIdentity(
        from_email=settings.mail_from,
        from_name=business_name or settings.mail_from_name,
        reply_to=company.company_email if company else user.email,
    )


def _esc(value) -> str:
    return html.escape(str(value)) if value is not None else ""


class EmailService:
    """Service for sending transactional emails."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.provider = settings.email_provider or EmailProvider.MOCK

    async def send_email(
        self,
        message: EmailMessage,
        user_id: Optional[uuid.UUID] = None,
    ) -> EmailLog:
        """
        Send an email and record the attempt.

        Returns the EmailLog row (status sent or failed).
        """
        log = EmailLog(
            user_id=user_id,
            recipient_email=", ".join(message.to),
            sender_email=message.from_email or settings.mail_from,
            subject=message.subject,
            email_type=infer_email_type(message.subject),
            status=EmailStatus.PENDING,
        )

        try:
            await self._send_mock(message)
            log.status = EmailStatus.SENT
            log.sent_at = datetime.now(timezone.utc)
        except Exception as e:
            logger.error(f"Failed to send email via {self.provider}: {e}")
            log.status = EmailStatus.FAILED
            log.error_message = str(e)

        self.db.add(log)
        await self.db.commit()
        await self.db.refresh(log)

        return log

    async def _send_mock(self, message: EmailMessage) -> bool:
        """Mock email sending."""
        sender = f"{message.from_name} <{message.from_email}>" if message.from_name else message.from_email
        logger.info(f"[MOCK EMAIL] From: {sender} | To: {message.to} | Subject: {message.subject}")
        logger.debug(f"[MOCK EMAIL] Body: {message.body_text[:200]}...")
        return True

    # ===========================================
    # TRANSACTIONAL EMAIL TEMPLATES
    # ===========================================

    def build_invoice_email(
        self,
        invoice: Invoice,
        sender: SenderIdentity,
        company: Optional[CompanyInfo] = None,
        payment_methods: Optional[List[PaymentMethod]] = None,
        recipient: Optional[str] = None,
        note: Optional[str] = None,
    ) -> EmailMessage:
        """Render the invoice email. Totals come from the shared calculator."""
        totals = totals_for_invoice(invoice)
        business_name = company.business_name if company else sender.from_name
        currency = invoice.currency
        subject = f"Invoice {invoice.invoice_number} from {business_name}"

        methods = [m for m in (payment_methods or []) if m.is_active]

        rows_html = ""
        rows_text = []
        for item in invoice.items:
            qty = f"{item.hours} h x " if invoice.hours_enabled and item.hours is not None else ""
            rows_html += (
                f"<tr><td style=\"padding: 6px 0;\">{_esc(item.title)}</td>"
                f"<td style=\"padding: 6px 0; text-align: right;\">{qty}{currency} {item.rate:,.2f}</td>"
                f"<td style=\"padding: 6px 0; text-align: right;\">{currency} {item.subtotal:,.2f}</td></tr>"
            )
            rows_text.append(f"- {item.title}: {qty}{currency} {item.rate:,.2f} = {currency} {item.subtotal:,.2f}")

        summary_html = f"<p>Subtotal: {currency} {totals.subtotal:,.2f}</p>"
        summary_text = [f"Subtotal: {currency} {totals.subtotal:,.2f}"]
        if invoice.tax_enabled:
            summary_html += f"<p>Tax ({invoice.tax_rate}%): {currency} {totals.tax_amount:,.2f}</p>"
            summary_text.append(f"Tax ({invoice.tax_rate}%): {currency} {totals.tax_amount:,.2f}")
        if invoice.discount_enabled:
            suffix = f" ({invoice.discount_value}%)" if invoice.discount_type == DiscountType.PERCENTAGE else ""
            summary_html += f"<p>Discount{suffix}: -{currency} {totals.discount_amount:,.2f}</p>"
            summary_text.append(f"Discount{suffix}: -{currency} {totals.discount_amount:,.2f}")
        summary_html += f"<p><strong>Total: {currency} {totals.total:,.2f}</strong></p>"
        summary_text.append(f"Total: {currency} {totals.total:,.2f}")

        methods_html = ""
        methods_text = []
        if methods:
            methods_html = "<h3>Payment Methods</h3>"
            for method in methods:
                lines = describe_payment_method(method)
                methods_html += (
                    f"<p><strong>{_esc(method.name)}</strong><br>"
                    + "<br>".join(_esc(line) for line in lines)
                    + "</p>"
                )
                methods_text.append(method.name)
                methods_text.extend(f"  {line}" for line in lines)

        due_html = f"<p><strong>Due Date:</strong> {invoice.due_date.strftime('%B %d, %Y')}</p>" if invoice.due_date else ""
        due_text = f"Due Date: {invoice.due_date.strftime('%B %d, %Y')}" if invoice.due_date else ""
        pay_html = ""
        if invoice.payment_gateway_url:
            pay_html = (
                f'<p><a href="{_esc(invoice.payment_gateway_url)}" '
                'style="display: inline-block; background-color: #2563eb; color: white; '
                'padding: 12px 24px; text-decoration: none; border-radius: 6px;">Pay Now</a></p>'
            )
        note_html = f"<p>{_esc(note)}</p>" if note else ""
        signature_html = f"<p>{_esc(sender.signature)}</p>" if sender.signature else ""

        body_html = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h1 style="color: #1e40af;">Invoice {_esc(invoice.invoice_number)}</h1>
                <p>Dear {_esc(invoice.client_name)},</p>
                {note_html}
                <p>Please find your invoice from {_esc(business_name)} below.</p>
                {due_html}
                <table style="width: 100%; border-collapse: collapse;">{rows_html}</table>
                {summary_html}
                {pay_html}
                {methods_html}
                <p>Thank you for your business.</p>
                {signature_html}
            </div>
        </body>
        </html>
        """

        text_parts = [
            f"Invoice {invoice.invoice_number}",
            "",
            f"Dear {invoice.client_name},",
        ]
        if note:
            text_parts += ["", note]
        text_parts += ["", f"Please find your invoice from {business_name} below."]
        if due_text:
            text_parts.append(due_text)
        text_parts += [""] + rows_text + [""] + summary_text
        if invoice.payment_gateway_url:
            text_parts += ["", f"Pay online: {invoice.payment_gateway_url}"]
        if methods_text:
            text_parts += ["", "Payment Methods:"] + methods_text
        text_parts += ["", "Thank you for your business."]
        if sender.signature:
            text_parts += ["", sender.signature]

        return EmailMessage(
            to=[recipient or invoice.client_email],
            subject=subject,
            body_text="\n".join(text_parts),
            body_html=body_html,
            from_email=sender.from_email,
            from_name=sender.from_name,
            reply_to=sender.reply_to,
        )

    async def send_invoice_email(
        self,
        invoice: Invoice,
        user: User,
        company: Optional[CompanyInfo] = None,
        payment_methods: Optional[List[PaymentMethod]] = None,
        email_settings: Optional[AgencyEmailSettings] = None,
        recipient: Optional[str] = None,
        note: Optional[str] = None,
    ) -> EmailLog:
        """Send invoice to its client."""
        sender = get_sender_identity(user, company, email_settings)
        message = self.build_invoice_email(
            invoice,
            sender,
            company=company,
            payment_methods=payment_methods,
            recipient=recipient,
            note=note,
        )
        return await self.send_email(message, user_id=user.id)

    async def send_welcome_email(self, user: User) -> EmailLog:
        """Send welcome email to a new profile."""
        subject = f"Welcome to {settings.app_name}!"
        dashboard_url = f"{settings.frontend_url}/dashboard"

        body_html = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h1 style="color: #1e40af;">Welcome to {settings.app_name}!</h1>
                <p>Hi {_esc(user.name)},</p>
                <p>Your account is ready. Add your company details, set up payment methods and send your first invoice.</p>
                <p><a href="{dashboard_url}">Go to Dashboard</a></p>
            </div>
        </body>
        </html>
        """

        body_text = (
            f"Welcome to {settings.app_name}!\n\n"
            f"Hi {user.name},\n\n"
            "Your account is ready. Add your company details, set up payment methods "
            "and send your first invoice.\n\n"
            f"Visit your dashboard: {dashboard_url}\n"
        )

        return await self.send_email(
            EmailMessage(to=[user.email], subject=subject, body_text=body_text, body_html=body_html),
            user_id=user.id,
        )

    async def send_team_invitation(
        self,
        owner: User,
        member: TeamMember,
        company: Optional[CompanyInfo] = None,
    ) -> EmailLog:
        """Invite a team member."""
        sender = get_sender_identity(owner, company)
        team_name = company.business_name if company else owner.name
        subject = f"You've been invited to join {team_name}"
        join_url = f"{settings.frontend_url}/login?invite={member.id}"

        body_html = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h1 style="color: #1e40af;">Team invitation</h1>
                <p>{_esc(owner.name)} has invited you to join <strong>{_esc(team_name)}</strong>
                as a {member.role.value}.</p>
                <p><a href="{join_url}">Accept invitation</a></p>
            </div>
        </body>
        </html>
        """
        body_text = (
            f"{owner.name} has invited you to join {team_name} as a {member.role.value}.\n\n"
            f"Accept invitation: {join_url}\n"
        )

        return await self.send_email(
            EmailMessage(
                to=[member.email],
                subject=subject,
                body_text=body_text,
                body_html=body_html,
                from_email=sender.from_email,
                from_name=sender.from_name,
                reply_to=sender.reply_to,
            ),
            user_id=owner.id,
        )

    async def send_portal_link(
        self,
        owner: User,
        access: ClientPortalAccess,
        portal_url: str,
        company: Optional[CompanyInfo] = None,
    ) -> EmailLog:
        """Email a client their portal link."""
        sender = get_sender_identity(owner, company)
        business_name = company.business_name if company else owner.name
        subject = f"Your client portal from {business_name}"
        expires = access.expires_at.strftime('%B %d, %Y')

        body_html = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h1 style="color: #1e40af;">Your client portal</h1>
                <p>{_esc(business_name)} has shared a portal where you can view all your invoices.</p>
                <p><a href="{_esc(portal_url)}">Open portal</a></p>
                <p>This link is valid until {expires}.</p>
            </div>
        </body>
        </html>
        """
        body_text = (
            f"{business_name} has shared a portal where you can view all your invoices.\n\n"
            f"Open portal: {portal_url}\n"
            f"This link is valid until {expires}.\n"
        )

        return await self.send_email(
            EmailMessage(
                to=[access.client_email],
                subject=subject,
                body_text=body_text,
                body_html=body_html,
                from_email=sender.from_email,
                from_name=sender.from_name,
                reply_to=sender.reply_to,
            ),
            user_id=owner.id,
        )
