# deals/token_utils.py

import json
import re
import secrets
import uuid
from dataclasses import dataclass
from urllib.parse import urlparse


# Crockford-like alphabet: no 0/O, 1/I/L confusion at the counter
CODE_ALPHABET = "23456789ABCDEFGHJKMNPQRSTUVWXYZ"

MANUAL_CODE_LEN = 5
MANUAL_CODE_RE = re.compile(r"^[A-Z0-9]{5}$")

REDEEM_PATH_RE = re.compile(r"/r/(?P<tok>[0-9a-fA-F-]{32,36})/?$")


def _random_code(length: int) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate_manual_code() -> str:
    return _random_code(MANUAL_CODE_LEN)


def make_merchant_pin() -> str:
    # 6 chars → 31^6 space, plenty for a per-merchant poster id
    return _random_code(6)


def make_access_code() -> str:
    # 4 digits, 1000-9999, read out to locals with the town invite
    return str(1000 + secrets.randbelow(9000))


# ------------------------------
# QR payloads
# ------------------------------
def claim_qr_payload(claim) -> str:
    """
    Payload rendered into the consumer's QR.
    Plain JSON, not signed: the token is a backend UUID4.
    """
    return json.dumps({"token": str(claim.token)}, separators=(",", ":"))


def merchant_qr_payload(merchant) -> str:
    """Merchant-level poster payload (printed flyer at the counter)."""
    return json.dumps({"merchant_pin": merchant.merchant_pin}, separators=(",", ":"))


# ------------------------------
# PARSE counter input
# ------------------------------
@dataclass(frozen=True)
class ScanInput:
    kind: str   # "code" | "token"
    value: str


def _as_uuid(s: str):
    try:
        return str(uuid.UUID(str(s).strip()))
    except (ValueError, AttributeError, TypeError):
        return None


def parse_scan_input(raw) -> ScanInput:
    """
    Classify whatever the scanner (or staff keyboard) produced.

    Accepts:
      - 5-char manual code (any case)
      - JSON like {"token": "..."} or {"t": "..."}
      - redeem URL ending in /r/<uuid>
      - bare UUID
    """
    candidate = str(raw or "").strip()
    if not candidate:
        raise ValueError("No code provided")

    upper = candidate.upper()
    if MANUAL_CODE_RE.fullmatch(upper):
        return ScanInput(kind="code", value=upper)

    # 1) JSON payload
    if candidate.startswith("{"):
        try:
            doc = json.loads(candidate)
        except json.JSONDecodeError:
            doc = None
        if isinstance(doc, dict):
            tok = _as_uuid(doc.get("token") or doc.get("t") or "")
            if tok:
                return ScanInput(kind="token", value=tok)
        raise ValueError("Unrecognised code")

    # 2) URL
    u = urlparse(candidate)
    if u.scheme and u.netloc:
        m = REDEEM_PATH_RE.search(u.path)
        if m:
            tok = _as_uuid(m.group("tok"))
            if tok:
                return ScanInput(kind="token", value=tok)
        raise ValueError("Unrecognised code")

    # 3) bare token
    tok = _as_uuid(candidate)
    if tok:
        return ScanInput(kind="token", value=tok)

    raise ValueError("Unrecognised code")
