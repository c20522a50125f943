import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Supabase Configuration
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")
# Service role key bypasses RLS - only used server-side for admin operations
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
PROFILES_TABLE = os.getenv("PROFILES_TABLE", "doc_doctors")

# Session cookies
ACCESS_TOKEN_COOKIE = os.getenv("ACCESS_TOKEN_COOKIE", "sb-access-token")
REFRESH_TOKEN_COOKIE = os.getenv("REFRESH_TOKEN_COOKIE", "sb-refresh-token")
SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "true").lower() == "true"
SESSION_COOKIE_MAX_AGE = int(os.getenv("SESSION_COOKIE_MAX_AGE", str(60 * 60 * 24 * 7)))

# Background profile fetch for the session-state endpoint
PROFILE_FETCH_TIMEOUT_SECONDS = float(os.getenv("PROFILE_FETCH_TIMEOUT_SECONDS", "10"))

# Public base URL used in credential emails and WhatsApp messages
APP_URL = os.getenv("APP_URL", "https://aisurgeonpilot.com")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "AiSurgeonPilot <noreply@aisurgeonpilot.com>")

# DoubleTick WhatsApp Configuration
DOUBLETICK_API_KEY = os.getenv("DOUBLETICK_API_KEY")
DOUBLETICK_API_URL = os.getenv("DOUBLETICK_API_URL", "https://public.doubletick.io/whatsapp")
# Prepended to phone numbers stored without an international prefix
DEFAULT_PHONE_COUNTRY_CODE = os.getenv("DEFAULT_PHONE_COUNTRY_CODE", "+91")
