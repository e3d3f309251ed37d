"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility
"""

from typing import Optional

from .config import FRONTEND_URL
from .utils.sanitization import sanitize_string, text_to_html_paragraphs

# CareConnect theme colors - Blue/Slate color scheme
THEME = {
    "primary": "#2563eb",
    "primary_dark": "#1d4ed8",
    "primary_light": "#dbeafe",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}

SITE_URL = "https://www.careconnectlive.org"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    is_provider_email: bool = False,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    footer_notice = ""
    if is_provider_email:
        footer_notice = """
        <mj-text align="center" font-size="12px" color="#94a3b8" padding="12px 0 0 0">
          You're receiving this because your facility is listed on CareConnect.
        </mj-text>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary']}" padding="28px 20px">
          <mj-column>
            <mj-text align="center" font-size="26px" font-weight="700" color="#ffffff" padding="0">
              CareConnect
            </mj-text>
            <mj-text align="center" font-size="14px" color="{THEME['primary_light']}" padding="4px 0 0 0">
              Connecting families with licensed care providers
            </mj-text>
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="14px" color="#94a3b8" padding="0">
              <a href="{SITE_URL}/privacy" style="color: #64748b; text-decoration: none;">Privacy Policy</a>
              <span style="color: #cbd5e1; margin: 0 8px;">•</span>
              <a href="{SITE_URL}/terms" style="color: #64748b; text-decoration: none;">Terms of Service</a>
            </mj-text>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="12px 0 0 0">
              © CareConnect Minnesota. All rights reserved.
            </mj-text>
            {footer_notice}
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_box(rows: list[tuple[str, str]], color: str = THEME["primary_light"]) -> str:
    lines = "<br/>".join(f"<strong>{label}:</strong> {value}" for label, value in rows)
    return f"""
    <mj-text container-background-color="{color}" padding="16px 20px">
      {lines}
    </mj-text>
    """


# ============================================
# Provider subscription emails
# ============================================


def trial_ending_template(provider_name: str, business_name: str, days_left: int) -> str:
    """Reminder that a provider's free trial is ending"""
    provider_name = sanitize_string(provider_name)
    business_name = sanitize_string(business_name)
    day_word = "day" if days_left == 1 else "days"
    content = f"""
    <mj-text>
      Dear {provider_name},
    </mj-text>

    <mj-text>
      Your free trial for <strong>{business_name}</strong> ends in <strong>{days_left} {day_word}</strong>.
    </mj-text>

    <mj-text container-background-color="#fef3c7" padding="16px 20px">
      <strong>⏰ Don't lose your listing!</strong><br/>
      Subscribe now to keep receiving referrals and stay visible to case managers and families.
    </mj-text>

    <mj-text padding="20px 0 0 20px">
      • Keep your facility listing active<br/>
      • Continue receiving referrals and inquiries<br/>
      • Maintain messaging with case managers<br/>
      • Cancel anytime, no long-term contracts
    </mj-text>
    """

    return get_base_template(
        title="Your Trial is Ending Soon",
        preview_text=f"{days_left} {day_word} left in your CareConnect trial",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/subscribe",
        cta_label="Subscribe Now",
        is_provider_email=True,
    )


def subscription_confirmed_template(
    provider_name: str, business_name: str, plan_name: str, amount: float
) -> str:
    """Subscription confirmation for a provider"""
    provider_name = sanitize_string(provider_name)
    business_name = sanitize_string(business_name)
    content = f"""
    <mj-text>
      Dear {provider_name},
    </mj-text>

    <mj-text>
      Your subscription for <strong>{business_name}</strong> is now active.
      Thank you for being part of the CareConnect network!
    </mj-text>

    {_detail_box([("Plan", plan_name), ("Amount", f"${amount:,.2f}/month")], "#dcfce7")}

    <mj-text padding="20px 0 0 0">
      Your listing stays visible to referral sources, and you can manage your subscription
      from the billing portal at any time.
    </mj-text>
    """

    return get_base_template(
        title="Thank You for Subscribing! 🎉",
        preview_text=f"Subscription confirmed - {business_name}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/billing",
        cta_label="Manage Billing",
        is_provider_email=True,
    )


# ============================================
# Booking & inquiry emails
# ============================================


def booking_request_customer_template(
    customer_name: str, provider_name: str, booking_date: str, booking_time: str
) -> str:
    """Confirmation to a care seeker that their booking request was sent"""
    customer_name = sanitize_string(customer_name)
    provider_name = sanitize_string(provider_name)
    content = f"""
    <mj-text>
      Dear {customer_name},
    </mj-text>

    <mj-text>
      Your tour request has been sent to <strong>{provider_name}</strong>.
    </mj-text>

    {_detail_box([("Provider", provider_name), ("Requested Date", booking_date), ("Requested Time", booking_time)])}

    <mj-text padding="20px 0 0 20px">
      • The provider will review your request within 24-48 hours<br/>
      • You'll receive an email when they respond<br/>
      • Check your bookings page for updates
    </mj-text>
    """

    return get_base_template(
        title="Booking Request Submitted! ✅",
        preview_text=f"Booking request sent to {provider_name}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/my-bookings",
        cta_label="View My Bookings",
    )


def new_booking_provider_template(
    business_name: str,
    customer_name: str,
    customer_email: str,
    customer_phone: str,
    booking_date: str,
    booking_time: str,
    notes: Optional[str] = None,
) -> str:
    """New booking notification for a provider"""
    rows = [
        ("Name", sanitize_string(customer_name)),
        ("Email", sanitize_string(customer_email)),
        ("Phone", sanitize_string(customer_phone)),
        ("Date", booking_date),
        ("Time", booking_time),
    ]
    if notes:
        rows.append(("Notes", sanitize_string(notes)))

    content = f"""
    <mj-text>
      <strong>{sanitize_string(business_name)}</strong> has a new tour request.
    </mj-text>

    {_detail_box(rows)}
    """

    return get_base_template(
        title="New Booking Request",
        preview_text=f"New booking request from {sanitize_string(customer_name)}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/dashboard",
        cta_label="Review Booking",
        is_provider_email=True,
    )


def new_inquiry_provider_template(
    business_name: str, seeker_name: str, subject: str, message: str
) -> str:
    """New inquiry notification for a provider"""
    paragraphs = "".join(
        f"<mj-text>{paragraph}</mj-text>" for paragraph in text_to_html_paragraphs(message)
    )
    content = f"""
    <mj-text>
      <strong>{sanitize_string(seeker_name)}</strong> sent an inquiry to
      <strong>{sanitize_string(business_name)}</strong>.
    </mj-text>

    {_detail_box([("Subject", sanitize_string(subject))])}

    {paragraphs}
    """

    return get_base_template(
        title="New Inquiry",
        preview_text=f"New inquiry: {sanitize_string(subject)}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/dashboard/inquiries",
        cta_label="Respond",
        is_provider_email=True,
    )


# ============================================
# Admin emails
# ============================================


def contact_submission_template(
    name: str, email: str, phone: Optional[str], subject: Optional[str], message: str
) -> str:
    """Contact form submission forwarded to the admin inbox"""
    rows = [("Name", sanitize_string(name)), ("Email", sanitize_string(email))]
    if phone:
        rows.append(("Phone", sanitize_string(phone)))
    if subject:
        rows.append(("Subject", sanitize_string(subject)))
    paragraphs = "".join(
        f"<mj-text>{paragraph}</mj-text>" for paragraph in text_to_html_paragraphs(message)
    )
    content = f"""
    {_detail_box(rows)}

    {paragraphs}
    """

    return get_base_template(
        title="New Contact Submission",
        preview_text=f"Contact form message from {sanitize_string(name)}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/admin",
        cta_label="Open Admin",
    )


def custom_message_template(provider_name: Optional[str], subject: str, message: str) -> str:
    """Free-form admin message, one paragraph per blank-line separated block"""
    greeting = sanitize_string(provider_name or "Provider")
    paragraphs = "".join(
        f"<mj-text>{paragraph}</mj-text>" for paragraph in text_to_html_paragraphs(message)
    )
    content = f"""
    <mj-text>
      Dear {greeting},
    </mj-text>

    {paragraphs}

    <mj-text padding="20px 0 0 0">
      <strong>The CareConnect Team</strong>
    </mj-text>
    """

    return get_base_template(
        title=sanitize_string(subject),
        preview_text=sanitize_string(subject),
        content_sections=content,
    )
