"""
PayFast request signing.

PayFast expects an MD5 digest over the sorted, URL-encoded payment
parameters with the merchant passphrase appended. Inbound notifications
are checked by re-running the same algorithm over the posted fields.
"""
import hashlib
import hmac
import re
from typing import Any, Mapping, Optional
from urllib.parse import quote

# Characters JavaScript's encodeURIComponent leaves alone, beyond what
# urllib.parse.quote always keeps (letters, digits and "_.-~").
_UNRESERVED = "!*'()"

SIGNATURE_FIELD = "signature"


def _present(value: Any) -> bool:
    return value is not None and str(value) != ""


def encode_value(value: Any) -> str:
    """URL-encode a single parameter value the way PayFast signs it."""
    return quote(str(value).strip(), safe=_UNRESERVED).replace("%20", "+")


def build_signature_string(params: Mapping[str, Any], passphrase: Optional[str] = None) -> str:
    pairs = [
        f"{key}={encode_value(params[key])}"
        for key in sorted(params)
        if key != SIGNATURE_FIELD and _present(params[key])
    ]
    payload = "&".join(pairs)
    if passphrase:
        payload += f"&passphrase={quote(passphrase, safe=_UNRESERVED)}"
    return payload


def generate_signature(params: Mapping[str, Any], passphrase: Optional[str] = None) -> str:
    """Lowercase hex MD5 of the canonical parameter string."""
    payload = build_signature_string(params, passphrase)
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


def verify_signature(
    params: Mapping[str, Any],
    signature: Optional[str],
    passphrase: Optional[str] = None,
) -> bool:
    if not signature:
        return False
    expected = generate_signature(params, passphrase)
    return hmac.compare_digest(expected, signature.strip().lower())


def build_query_string(params: Mapping[str, Any]) -> str:
    """Query string in insertion order, skipping empty values."""
    return "&".join(
        f"{key}={encode_value(value)}"
        for key, value in params.items()
        if _present(value) and key != "passphrase"
    )


def format_phone_number(phone: Optional[str], country_code: str = "27") -> str:
    """
    Normalize a contact number to <country code><9 digit subscriber>.

    Examples (country code 27):
        "082 123 4567"  -> "27821234567"
        "+27821234567"  -> "27821234567"
        None            -> "27000000000"
    """
    if not phone:
        return f"{country_code}000000000"

    digits = re.sub(r"\D", "", phone)

    if digits.startswith(country_code) and len(digits) == len(country_code) + 9:
        return digits

    # Trunk prefix
    if digits.startswith("0"):
        return f"{country_code}{digits[1:]}"

    return f"{country_code}{digits[-9:].rjust(9, '0')}"
