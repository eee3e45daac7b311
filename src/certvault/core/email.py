"""
Email Service using Resend

Notifications for the certificate access workflow:
- a company requested access (to the student)
- a request was approved, denied or revoked (to the company)
- a request is still waiting for an answer (to the student)
- a certificate was issued (to the student)

Every helper returns True/False and never raises for delivery problems;
callers treat a failed notification as non-fatal.
"""

import asyncio
import logging
from html import escape

import resend

from certvault.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

_STYLES = """
    body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
    .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
    .header { color: #1e3a5f; margin-bottom: 24px; }
    .button { display: inline-block; background-color: #1e3a5f; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }
    .info-box { background-color: #f3f4f6; padding: 16px; border-radius: 8px; margin: 16px 0; }
    .digest { font-family: ui-monospace, monospace; word-break: break-all; }
    .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
"""


def _render(title: str, body: str) -> str:
    """Wrap an HTML body fragment in the common layout."""
    return f"""
    <!DOCTYPE html>
    <html>
    <head><style>{_STYLES}</style></head>
    <body>
        <div class="container">
            <h1 class="header">{title}</h1>
            {body}
            <div class="footer">
                <p>CertVault - Verified Academic Certificates</p>
            </div>
        </div>
    </body>
    </html>
    """


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent (or logged in place of sending)
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_access_request_received(
    to_email: str,
    student_name: str,
    company_name: str,
    message: str | None,
) -> bool:
    """Tell a student that a company asked to see their certificates."""
    safe_student_name = escape(student_name)
    safe_company_name = escape(company_name)
    requests_url = f"{settings.frontend_url}/dashboard/student/requests"

    message_block = ""
    if message:
        message_block = f"""
            <div class="info-box">
                <p><strong>Message from {safe_company_name}:</strong></p>
                <p>{escape(message)}</p>
            </div>
        """

    body = f"""
        <p>Hello {safe_student_name},</p>
        <p><strong>{safe_company_name}</strong> has requested access to your certificates.</p>
        {message_block}
        <p>You can approve or deny the request from your dashboard. Approved access can be revoked at any time.</p>
        <a href="{requests_url}" class="button">Review Request</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"{safe_company_name} requested access to your certificates",
        html_content=_render("New Access Request", body),
    )


_DECISION_COPY: dict[str, tuple[str, str]] = {
    "approved": (
        "Access Approved",
        "has approved your request. Their certificates are now visible in your dashboard.",
    ),
    "denied": (
        "Access Denied",
        "has denied your request to view their certificates.",
    ),
    "revoked": (
        "Access Revoked",
        "has revoked your access. Their certificates are no longer visible to you.",
    ),
}


async def send_access_request_decision(
    to_email: str,
    company_name: str,
    student_name: str,
    decision: str,
) -> bool:
    """
    Tell a company the outcome of an access request.

    Args:
        decision: One of "approved", "denied", "revoked"
    """
    title, sentence = _DECISION_COPY[decision]
    safe_company_name = escape(company_name)
    safe_student_name = escape(student_name)
    requests_url = f"{settings.frontend_url}/dashboard/company/requests"

    body = f"""
        <p>Hello {safe_company_name},</p>
        <p><strong>{safe_student_name}</strong> {sentence}</p>
        <a href="{requests_url}" class="button">View Requests</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"{title}: {safe_student_name}",
        html_content=_render(title, body),
    )


async def send_pending_request_reminder(
    to_email: str,
    student_name: str,
    company_name: str,
    hours_waiting: int,
) -> bool:
    """Remind a student of an access request that has not been answered."""
    safe_student_name = escape(student_name)
    safe_company_name = escape(company_name)
    requests_url = f"{settings.frontend_url}/dashboard/student/requests"

    body = f"""
        <p>Hello {safe_student_name},</p>
        <p><strong>{safe_company_name}</strong> has been waiting more than {hours_waiting} hours for an answer to its access request.</p>
        <a href="{requests_url}" class="button">Review Request</a>
        <p>If you don't recognise this company, you can simply deny the request.</p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Reminder: {safe_company_name} is waiting for your answer",
        html_content=_render("Pending Access Request", body),
    )


async def send_certificate_issued(
    to_email: str,
    student_name: str,
    certificate_name: str,
    school_name: str,
    file_digest: str,
) -> bool:
    """Tell a student a new certificate was issued to them."""
    safe_student_name = escape(student_name)
    safe_certificate_name = escape(certificate_name)
    safe_school_name = escape(school_name)
    dashboard_url = f"{settings.frontend_url}/dashboard/student"

    body = f"""
        <p>Hello {safe_student_name},</p>
        <p><strong>{safe_school_name}</strong> has issued you a certificate: <strong>{safe_certificate_name}</strong>.</p>
        <div class="info-box">
            <p><strong>SHA-256 fingerprint:</strong></p>
            <p class="digest">{escape(file_digest)}</p>
        </div>
        <a href="{dashboard_url}" class="button">View Certificates</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"New certificate: {safe_certificate_name}",
        html_content=_render("Certificate Issued", body),
    )
