"""Tests for MJML compilation and Resend delivery"""

from unittest.mock import patch

from careconnect.email_service import (
    compile_mjml_to_html,
    notify,
    send_trial_ending_email,
)
from careconnect.email_templates import trial_ending_template


def test_templates_compile_to_html():
    html = compile_mjml_to_html(trial_ending_template("Dana", "Sunrise Family Home", 3))

    assert "<html" in html.lower()
    assert "Sunrise Family Home" in html
    assert "<mjml" not in html


async def test_trial_email_goes_through_resend():
    with patch("careconnect.email_service.RESEND_API_KEY", "re_test"), patch(
        "careconnect.email_service.resend.Emails.send", return_value={"id": "email_1"}
    ) as send:
        sent = await send_trial_ending_email(
            to="dana@sunrise.example",
            provider_name="Dana",
            business_name="Sunrise Family Home",
            days_left=1,
        )

    assert sent is True
    payload = send.call_args.args[0]
    assert payload["to"] == ["dana@sunrise.example"]
    assert payload["subject"] == "⏰ 1 Day Left in Your CareConnect Trial"
    assert "Sunrise Family Home" in payload["html"]


async def test_notify_reports_failures_instead_of_raising():
    assert await notify("dana@sunrise.example", "Hello", "<mjml></mjml>") is False
    assert await notify(None, "Hello", "<mjml></mjml>") is False
