"""Temporary passwords and booking slugs for provisioned accounts"""

import re
import secrets
import string

PASSWORD_SYMBOLS = "!@#$%^&*"
TEMPORARY_PASSWORD_LENGTH = 12
SLUG_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    """Random password with at least one uppercase, lowercase, digit and symbol"""
    if length < 4:
        raise ValueError("Password length must be at least 4")

    chars = string.ascii_letters + string.digits + PASSWORD_SYMBOLS
    password = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice(PASSWORD_SYMBOLS),
    ]
    password += [secrets.choice(chars) for _ in range(length - 4)]
    secrets.SystemRandom().shuffle(password)
    return "".join(password)


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return slug.strip("-")


def generate_booking_slug(full_name: str) -> str:
    """Public booking slug: dr-<name>-<4 random chars>"""
    suffix = "".join(secrets.choice(SLUG_SUFFIX_ALPHABET) for _ in range(4))
    slug = slugify(full_name)
    return f"dr-{slug}-{suffix}" if slug else f"dr-{suffix}"
