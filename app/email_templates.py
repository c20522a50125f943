"""
MJML Email Templates
Credential emails for provisioned accounts, compiled to HTML by email_service
"""

from html import escape
from typing import Optional

# Brand colors - Indigo/Violet color scheme
THEME = {
    "primary": "#4F46E5",
    "primary_dark": "#4338CA",
    "accent": "#7C3AED",
    "background": "#f9fafb",
    "card_bg": "#ffffff",
    "text_primary": "#111827",
    "text_secondary": "#333333",
    "text_muted": "#6b7280",
    "border": "#e5e7eb",
    "warning_bg": "#FEF3C7",
    "warning_text": "#92400E",
}

BRAND_NAME = "AiSurgeonPilot"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="{THEME['card_bg']}" padding="0 40px 32px 40px">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="0"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <!-- Header -->
        <mj-section background-color="{THEME['primary']}" padding="30px 40px" border-radius="10px 10px 0 0">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="#ffffff" padding="0">
              {title}
            </mj-text>
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="{THEME['card_bg']}" padding="30px 40px">
          <mj-column>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="{THEME['text_muted']}" padding="0">
              You're receiving this because an administrator created or updated your {BRAND_NAME} account.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def credentials_template(
    full_name: str,
    email: str,
    password: str,
    login_url: str,
    role_label: str,
    is_reset: bool = False,
) -> str:
    """Login credentials for a newly provisioned or reset account"""
    if is_reset:
        title = "Password Reset"
        intro = (
            f"Your {escape(role_label)} password has been reset by an administrator. "
            "Below are your new login credentials:"
        )
        password_label = "New Password"
        closing = "If you did not request this password reset, please contact your administrator immediately."
    else:
        title = f"Welcome to {BRAND_NAME}"
        intro = f"An {escape(role_label)} account has been created for you. Below are your login credentials:"
        password_label = "Temporary Password"
        closing = "If you have any questions, please contact your administrator."

    content = f"""
    <mj-text>
      Dear {escape(full_name or '')},
    </mj-text>

    <mj-text>
      {intro}
    </mj-text>

    <mj-text padding="16px 20px" container-background-color="{THEME['background']}" border="1px solid {THEME['border']}">
      <strong>Email:</strong> {escape(email)}<br/>
      <strong>{password_label}:</strong> <code>{escape(password)}</code><br/>
      <strong>Login URL:</strong> <a href="{login_url}" style="color: {THEME['primary']};">{login_url}</a>
    </mj-text>

    <mj-text padding="16px 20px" container-background-color="{THEME['warning_bg']}" color="{THEME['warning_text']}">
      <strong>Important:</strong> For security, you will be required to change your password on first login.
    </mj-text>

    <mj-text>
      {closing}
    </mj-text>

    <mj-text>
      Best regards,<br/>{BRAND_NAME} Team
    </mj-text>
    """

    return get_base_template(
        title=title,
        preview_text=f"Your {BRAND_NAME} login credentials",
        content_sections=content,
        cta_url=login_url,
        cta_label="Log in",
    )
