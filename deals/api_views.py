# deals/api_views.py

import json
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.http import JsonResponse
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_POST

from .guards.access import require_admin
from .models import (
    Merchant,
    MerchantApplication,
    Profile,
    SupportRequest,
    Town,
    VerificationCode,
    WaitlistEntry,
)
from .otp_utils import (
    expires_at,
    gen_code,
    gen_temp_password,
    hash_code,
    normalize_email,
    normalize_phone_au,
    normalize_target,
    now,
    valid_e164,
    valid_email,
)
from .services.notifications import (
    send_approval_email,
    send_code_email,
    send_code_sms,
    send_support_auto_reply,
)

logger = logging.getLogger(__name__)
User = get_user_model()


def _body(request):
    try:
        data = json.loads(request.body.decode("utf-8") or "{}")
    except (ValueError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


def _bad_json():
    return JsonResponse({"ok": False, "error": "Invalid JSON"}, status=400)


# =========================
# Verification codes (email / SMS)
# =========================

@require_POST
@never_cache
def send_code(request):
    # Expect JSON: {"target": "<email | phone>"}
    body = _body(request)
    if body is None:
        return _bad_json()

    target, kind = normalize_target(body.get("target"))
    if target is None:
        return JsonResponse({"ok": False, "error": kind}, status=400)

    # live unused code already out there → succeed quietly
    live = VerificationCode.objects.filter(
        target=target,
        used=False,
        expires_at__gte=now(),
    ).exists()
    if live:
        return JsonResponse({"ok": True, "reused": True})

    code = gen_code()
    row = VerificationCode.objects.create(
        target=target,
        kind=kind,
        code_hash=hash_code(target, code),
        expires_at=expires_at(),
    )

    sent = send_code_email(target, code) if kind == "email" else send_code_sms(target, code)
    if not sent:
        # no live row for a code nobody received
        row.delete()
        return JsonResponse(
            {"ok": False, "error": "Could not send the code. Please try again."},
            status=500,
        )

    return JsonResponse({"ok": True})


@require_POST
@never_cache
def verify_code(request):
    body = _body(request)
    if body is None:
        return _bad_json()

    target, _ = normalize_target(body.get("target"))
    code = str(body.get("code") or "").strip()
    if target is None or not code:
        return JsonResponse({"ok": False, "error": "target and code required"}, status=400)

    row = (
        VerificationCode.objects
        .filter(target=target, used=False, expires_at__gte=now())
        .order_by("-created_at", "-id")
        .first()
    )
    if not row:
        return JsonResponse({"ok": False, "error": "code not found or expired"}, status=400)

    if row.attempts >= settings.VERIFICATION_MAX_ATTEMPTS:
        return JsonResponse(
            {"ok": False, "error": "Too many attempts. Please request a new code."},
            status=429,
        )

    if row.code_hash != hash_code(target, code):
        row.attempts += 1
        row.save(update_fields=["attempts"])
        return JsonResponse({"ok": False, "error": "invalid code"}, status=400)

    # success → consume
    row.used = True
    row.used_at = now()
    row.save(update_fields=["used", "used_at"])

    return JsonResponse({"ok": True, "to": target})


# =========================
# Accounts
# =========================

@require_POST
@never_cache
def check_availability(request):
    body = _body(request)
    if body is None:
        return _bad_json()

    email = normalize_email(body.get("email"))
    phone = normalize_phone_au(body.get("phone") or "")
    if not email and not phone:
        return JsonResponse({"ok": False, "error": "email or phone required"}, status=400)

    email_taken = bool(email) and User.objects.filter(email__iexact=email).exists()
    phone_taken = bool(phone) and Profile.objects.filter(phone=phone).exists()

    return JsonResponse({"ok": True, "email_taken": email_taken, "phone_taken": phone_taken})


def _create_account(*, email, phone, password, role=Profile.ROLE_CONSUMER):
    """
    Returns (user, None) or (None, (error, status)).
    Username is the email, or the phone for phone-only signups.
    """
    username = email or phone
    if User.objects.filter(username=username).exists() or (
        email and User.objects.filter(email__iexact=email).exists()
    ):
        return None, ("A user with this email or phone already exists.", 409)
    if phone and Profile.objects.filter(phone=phone).exists():
        return None, ("A user with this email or phone already exists.", 409)

    with transaction.atomic():
        user = User.objects.create_user(username=username, email=email or "", password=password)
        Profile.objects.filter(user=user).update(phone=phone or "", role=role)
    return user, None


@require_POST
@never_cache
def create_account(request):
    body = _body(request)
    if body is None:
        return _bad_json()

    email = normalize_email(body.get("email"))
    phone = normalize_phone_au(body.get("phone") or "") if body.get("phone") else ""
    password = body.get("password") or ""

    if not password or (not email and not phone):
        return JsonResponse({"ok": False, "error": "password and (email or phone) required"}, status=400)
    if email and not valid_email(email):
        return JsonResponse({"ok": False, "error": "Invalid email."}, status=400)

    try:
        user, err = _create_account(email=email, phone=phone, password=password)
    except DatabaseError as e:
        logger.exception("create account failed")
        return JsonResponse({"ok": False, "error": str(e) or "createUser failed"}, status=500)

    if err:
        return JsonResponse({"ok": False, "error": err[0]}, status=err[1])

    logger.info("created user id=%s", user.id)
    return JsonResponse({"ok": True, "user_id": user.id})


@require_POST
@never_cache
@require_admin
def admin_create_user(request):
    body = _body(request)
    if body is None:
        return _bad_json()

    email = normalize_email(body.get("email"))
    phone = normalize_phone_au(body.get("phone") or "") if body.get("phone") else ""
    if not email:
        return JsonResponse({"ok": False, "error": "Missing email"}, status=400)

    temp_password = gen_temp_password()
    user, err = _create_account(email=email, phone=phone, password=temp_password)
    if err:
        return JsonResponse({"ok": False, "error": err[0]}, status=400)

    return JsonResponse({
        "ok": True,
        "user_id": user.id,
        "email": user.email,
        "phone": phone or None,
        "tempPassword": temp_password,
    })


# =========================
# Merchant applications
# =========================

@require_POST
@never_cache
def venue_register(request):
    """
    Public venue registration form.
    IN  : { business_name, category, address, contact_name, position, email, phone, town_name? }
    OUT : { ok, application_id }  (status "new", waits for admin approval)
    """
    body = _body(request)
    if body is None:
        return _bad_json()

    fields = {
        k: str(body.get(k) or "").strip()
        for k in ("business_name", "category", "address", "contact_name", "position", "email", "phone")
    }
    if not all(fields.values()):
        return JsonResponse({"ok": False, "error": "Please fill in all required fields."}, status=400)

    if fields["category"] not in {c for c, _ in Merchant.CATEGORY_CHOICES}:
        return JsonResponse({"ok": False, "error": "Unknown category"}, status=400)

    email = normalize_email(fields["email"])
    if not valid_email(email):
        return JsonResponse({"ok": False, "error": "Invalid email."}, status=400)

    phone = normalize_phone_au(fields["phone"])
    if not valid_e164(phone):
        return JsonResponse(
            {"ok": False, "error": "Please enter a valid Australian phone number (e.g. 0412 345 678)."},
            status=400,
        )

    try:
        app = MerchantApplication.objects.create(
            business_name=fields["business_name"][:160],
            category=fields["category"],
            address=fields["address"][:255],
            contact_name=fields["contact_name"][:120],
            position=fields["position"][:120],
            email=email,
            phone=phone,
            town_name=str(body.get("town_name") or "").strip()[:160],
            status="new",
        )
    except DatabaseError:
        logger.exception("venue registration save failed")
        return JsonResponse(
            {"ok": False, "error": "Something went wrong submitting your application. Please try again."},
            status=500,
        )

    logger.info("merchant application %s received", app.id)
    return JsonResponse({"ok": True, "application_id": app.id})


@require_POST
@never_cache
@require_admin
def approve_application(request):
    """
    IN  : { "applicationId", "townId", "category" }
    OUT : { ok, createdNewUser, userId, merchantId, emailSent, emailError }

    Approval never fails because the email failed.
    """
    body = _body(request)
    if body is None:
        return _bad_json()

    app_id = body.get("applicationId")
    town_id = body.get("townId")
    category = (body.get("category") or "").strip()
    if not app_id or not town_id or not category:
        return JsonResponse({"ok": False, "error": "Missing applicationId, townId, or category"}, status=400)

    valid_categories = {c for c, _ in Merchant.CATEGORY_CHOICES}
    if category not in valid_categories:
        return JsonResponse({"ok": False, "error": "Unknown category"}, status=400)

    app = MerchantApplication.objects.filter(pk=app_id).first()
    if not app:
        return JsonResponse({"ok": False, "error": "Application not found"}, status=404)
    town = Town.objects.filter(pk=town_id).first()
    if not town:
        return JsonResponse({"ok": False, "error": "Town not found"}, status=404)

    email = normalize_email(app.email)
    business_name = (app.business_name or "").strip()
    street_address = (app.address or "").strip()
    if not email:
        return JsonResponse({"ok": False, "error": "Application missing email"}, status=400)
    if not business_name:
        return JsonResponse({"ok": False, "error": "Application missing business_name"}, status=400)
    if not street_address:
        return JsonResponse({"ok": False, "error": "Application missing address"}, status=400)

    created_new_user = False
    temp_password = None

    try:
        with transaction.atomic():
            user = User.objects.filter(email__iexact=email).first()
            if user is None:
                temp_password = gen_temp_password()
                user = User.objects.create_user(username=email, email=email, password=temp_password)
                created_new_user = True

            merchant = Merchant.objects.create(
                name=business_name,
                street_address=street_address,
                category=category,
                town=town,
            )

            Profile.objects.update_or_create(
                user=user,
                defaults={
                    "role": Profile.ROLE_MERCHANT,
                    "merchant": merchant,
                    "phone": normalize_phone_au(app.phone) if app.phone else "",
                },
            )

            app.status = "approved"
            app.save(update_fields=["status"])
    except DatabaseError as e:
        logger.exception("approve application %s failed", app_id)
        return JsonResponse({"ok": False, "error": str(e) or "Server error"}, status=500)

    email_sent, email_error = send_approval_email(
        to=email,
        contact_name=app.contact_name or email,
        temp_password=temp_password if created_new_user else None,
    )
    if not email_sent:
        logger.warning("approval email failed for application %s: %s", app_id, email_error)

    return JsonResponse({
        "ok": True,
        "createdNewUser": created_new_user,
        "userId": user.id,
        "merchantId": merchant.id,
        "emailSent": email_sent,
        "emailError": email_error,
    })


# =========================
# Waitlist
# =========================

@require_POST
@never_cache
def waitlist_join(request):
    body = _body(request)
    if body is None:
        return _bad_json()

    email = normalize_email(body.get("email"))
    town_name = str(body.get("town") or body.get("town_name") or "").strip()
    if not email or not town_name:
        return JsonResponse({"ok": False, "error": "Please enter your email and town."}, status=400)
    if not valid_email(email):
        return JsonResponse({"ok": False, "error": "Invalid email."}, status=400)

    _, created = WaitlistEntry.objects.get_or_create(
        email=email,
        town_name__iexact=town_name,
        defaults={"town_name": town_name[:120]},
    )
    return JsonResponse({"ok": True, "created": created})


# =========================
# Support
# =========================

@require_POST
@never_cache
def support_submit(request):
    body = _body(request)
    if body is None:
        return _bad_json()

    name = (body.get("name") or "").strip()
    email = normalize_email(body.get("email"))
    message = (body.get("message") or "").strip()
    if not name or not email or not message:
        return JsonResponse({"ok": False, "error": "Missing name, email, or message"}, status=400)
    if not valid_email(email):
        return JsonResponse({"ok": False, "error": "Invalid email."}, status=400)

    try:
        SupportRequest.objects.create(
            name=name[:120],
            email=email,
            phone=(body.get("phone") or "")[:20],
            type=(body.get("type") or "support")[:32],
            topic=(body.get("topic") or "")[:120],
            message=message,
        )
    except DatabaseError as e:
        logger.exception("support request save failed")
        return JsonResponse({"ok": False, "error": str(e) or "Failed to save support request"}, status=500)

    # confirmation email never blocks success
    sent, err = send_support_auto_reply(to=email, name=name, message=message)
    if not sent:
        logger.warning("support confirmation email failed: %s", err)

    return JsonResponse({"ok": True})
