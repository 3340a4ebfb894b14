"""Authorization token helpers."""

import logging

logger = logging.getLogger(__name__)

HEX_SEPARATOR = "\\u"


def hex_encode(value: str) -> str:
    """Encode each code point as 4+ lowercase hex digits joined by a literal backslash-u.

    This is an obfuscation for transit, not encryption: ``hex_encode("ab")``
    is ``"0061\\u0062"``.
    """
    logger.info("🔐 Converting token to hex")
    return HEX_SEPARATOR.join(f"{ord(ch):04x}" for ch in value)


def auth_token(credential: str, transit_protection: bool) -> str:
    return hex_encode(credential) if transit_protection else credential


def authorization_header(credential: str, transit_protection: bool) -> str:
    return f"Bearer {auth_token(credential, transit_protection)}"
