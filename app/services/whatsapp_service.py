"""
DoubleTick WhatsApp Service
Delivers login credentials to provisioned accounts over WhatsApp
"""

import logging
from typing import Optional

import httpx

from ..config import APP_URL, DOUBLETICK_API_KEY, DOUBLETICK_API_URL
from ..shared.validators import format_phone

logger = logging.getLogger(__name__)


class WhatsAppNotConfiguredError(Exception):
    """DOUBLETICK_API_KEY is not set"""


def credentials_message(
    full_name: str, email: str, password: str, role_label: str, is_reset: bool = False
) -> str:
    if is_reset:
        headline = f"{full_name}, your AiSurgeonPilot {role_label} password has been reset."
        label = "New credentials"
    else:
        headline = f"Welcome to AiSurgeonPilot, {full_name}! Your {role_label} account is ready."
        label = "Your login credentials"

    return (
        f"{headline}\n\n"
        f"{label}:\n"
        f"Email: {email}\n"
        f"Password: {password}\n\n"
        f"Login at: {APP_URL}/login\n\n"
        "Please change your password after login.\n\n"
        "- AiSurgeonPilot Team"
    )


async def send_whatsapp_text(
    to_phone: str,
    message: str,
    api_key: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> tuple[bool, Optional[str]]:
    """
    Send a plain-text WhatsApp message via DoubleTick

    Args:
        to_phone: Recipient phone number (normalized before sending)
        message: Message text
        api_key: DoubleTick key; defaults to DOUBLETICK_API_KEY
        http_client: Optional client to reuse instead of opening a new one

    Returns:
        Tuple of (success: bool, error_message: Optional[str])

    Raises:
        WhatsAppNotConfiguredError: If no API key is available
    """
    api_key = api_key or DOUBLETICK_API_KEY
    if not api_key:
        raise WhatsAppNotConfiguredError("DOUBLETICK_API_KEY is not configured")

    if not to_phone:
        return False, "No phone number provided"

    formatted_phone = format_phone(to_phone)
    payload = {"to": formatted_phone, "content": {"text": message}}
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    url = f"{DOUBLETICK_API_URL}/message/text"

    logger.info(f"📱 Sending WhatsApp message to {formatted_phone}")
    try:
        if http_client is not None:
            response = await http_client.post(url, json=payload, headers=headers, timeout=10.0)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(url, json=payload, headers=headers, timeout=10.0)
    except httpx.HTTPError as e:
        logger.error(f"❌ DoubleTick API error: {str(e)}")
        return False, str(e)

    if response.status_code in [200, 201, 202]:
        logger.info(f"✅ WhatsApp message sent to {formatted_phone}")
        return True, None

    error_message = "Failed to send WhatsApp message"
    try:
        error_data = response.json()
        if isinstance(error_data, dict):
            error_message = error_data.get("message") or error_message
    except ValueError:
        error_message = response.text or error_message
    logger.error(f"❌ DoubleTick API error [{response.status_code}]: {error_message}")
    return False, error_message
