import hashlib, hmac, secrets, re
from datetime import timedelta
from django.conf import settings
from django.utils import timezone

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
E164_RE = re.compile(r"^\+\d{7,15}$")
AU_LOCAL_RE = re.compile(r"^0\d{8,10}$")


def normalize_email(e: str) -> str:
    return (e or "").strip().lower()


def valid_email(e: str) -> bool:
    return bool(EMAIL_RE.match(normalize_email(e)))


def normalize_phone_au(s: str) -> str:
    """0412 345 678 → +61412345678; already-international numbers pass through."""
    t = re.sub(r"\s+", "", s or "")
    if t.startswith("+"):
        return t
    if AU_LOCAL_RE.match(t):
        return "+61" + t[1:]
    return t


def valid_e164(p: str) -> bool:
    return bool(E164_RE.match(p or ""))


def normalize_target(raw: str):
    """
    Returns (target, kind) or (None, error message).
    kind is "email" or "phone".
    """
    dest = (raw or "").strip()
    if not dest:
        return None, "target required"
    if valid_email(dest):
        return normalize_email(dest), "email"
    dest = normalize_phone_au(dest)
    if not valid_e164(dest):
        return None, "phone must be E.164 (e.g., +61...)"
    return dest, "phone"


def gen_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"   # 000000–999999 (leading zeros ok)


def hash_code(target: str, code: str) -> str:
    secret = getattr(settings, "SECRET_KEY", "otp-secret")
    msg = f"{target}::{code}".encode()
    return hmac.new(secret.encode(), msg, hashlib.sha256).hexdigest()


def gen_temp_password(length: int = 14) -> str:
    # strong but copyable
    chars = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789!@#$%"
    return "".join(secrets.choice(chars) for _ in range(length))


def now():
    return timezone.now()


def expires_at():
    return now() + timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES)
