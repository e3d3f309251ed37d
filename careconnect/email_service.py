"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import ADMIN_NOTIFICATION_EMAIL, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    booking_request_customer_template,
    contact_submission_template,
    custom_message_template,
    new_booking_provider_template,
    new_inquiry_provider_template,
    subscription_confirmed_template,
    trial_ending_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailNotConfiguredError(Exception):
    """Raised when no email provider is configured"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        # mjml_to_html returns a dict with 'html' and 'errors' keys
        result = mjml_to_html(mjml_content)
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    reply_to: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address
        reply_to: Optional reply-to address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailNotConfiguredError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        email_data = {
            "from": from_address or EMAIL_FROM_ADDRESS,
            "to": recipients,
            "subject": subject,
            "html": html_content,
        }
        if reply_to:
            email_data["reply_to"] = reply_to

        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


async def notify(to: Optional[str], subject: str, mjml_content: str, **kwargs) -> bool:
    """
    Send a notification email as a side effect.
    Failures are logged and reported as False, never raised.
    """
    if not to:
        logger.warning(f"⚠️ Skipping '{subject}' email: no recipient")
        return False
    try:
        await send_email(to=to, subject=subject, mjml_content=mjml_content, **kwargs)
        return True
    except Exception as e:
        logger.error(f"❌ Notification '{subject}' to {to} failed: {e}")
        return False


# ============================================
# Pre-built Email Templates for Common Events
# All templates use MJML for responsive design
# ============================================


async def send_trial_ending_email(
    to: str, provider_name: str, business_name: str, days_left: int
) -> bool:
    """Send trial ending reminder to a provider"""
    day_word = "Day" if days_left == 1 else "Days"
    return await notify(
        to,
        f"⏰ {days_left} {day_word} Left in Your CareConnect Trial",
        trial_ending_template(provider_name, business_name, days_left),
    )


async def send_subscription_confirmed_email(
    to: str, provider_name: str, business_name: str, plan_name: str, amount: float
) -> bool:
    return await notify(
        to,
        f"✅ Subscription Confirmed - {business_name}",
        subscription_confirmed_template(provider_name, business_name, plan_name, amount),
    )


async def send_booking_request_confirmation(
    to: str, customer_name: str, provider_name: str, booking_date: str, booking_time: str
) -> bool:
    """Confirm to the care seeker that their booking request was sent"""
    return await notify(
        to,
        f"Booking Request Sent to {provider_name}",
        booking_request_customer_template(customer_name, provider_name, booking_date, booking_time),
    )


async def send_new_booking_notification(
    to: Optional[str],
    business_name: str,
    customer_name: str,
    customer_email: str,
    customer_phone: str,
    booking_date: str,
    booking_time: str,
    notes: Optional[str] = None,
) -> bool:
    """Notify a provider about a new booking request"""
    return await notify(
        to,
        f"New Booking Request from {customer_name}",
        new_booking_provider_template(
            business_name,
            customer_name,
            customer_email,
            customer_phone,
            booking_date,
            booking_time,
            notes,
        ),
        reply_to=customer_email,
    )


async def send_new_inquiry_notification(
    to: Optional[str], business_name: str, seeker_name: str, subject: str, message: str
) -> bool:
    return await notify(
        to,
        f"New Inquiry: {subject}",
        new_inquiry_provider_template(business_name, seeker_name, subject, message),
    )


async def send_contact_submission_notification(
    name: str, email: str, phone: Optional[str], subject: Optional[str], message: str
) -> bool:
    """Forward a contact form submission to the admin inbox"""
    return await notify(
        ADMIN_NOTIFICATION_EMAIL,
        f"Contact Form: {subject or 'New message'}",
        contact_submission_template(name, email, phone, subject, message),
        reply_to=email,
    )


async def send_custom_email(
    to: str, subject: str, message: str, provider_name: Optional[str] = None
) -> dict:
    """Admin-composed message. Errors propagate so the admin sees them."""
    return await send_email(
        to=to,
        subject=subject,
        mjml_content=custom_message_template(provider_name, subject, message),
    )
