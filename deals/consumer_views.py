# deals/consumer_views.py

import json

from django.db.models import Q
from django.http import JsonResponse
from django.utils import timezone
from django.utils.crypto import constant_time_compare
from django.views.decorators.cache import cache_control, never_cache
from django.views.decorators.http import require_GET, require_POST

from .guards.access import get_profile, require_login_json
from .models import Claim, Offer, Redemption, Town
from .services.token_issuer import issue_claim


# =========================
# Offer serialisation helpers
# =========================

def _live_offers_qs(now_ts):
    return (
        Offer.objects
        .filter(is_active=True)
        .filter(Q(valid_from__isnull=True) | Q(valid_from__lte=now_ts))
        .filter(Q(valid_to__isnull=True) | Q(valid_to__gte=now_ts))
        .select_related("merchant", "merchant__town")
    )


def _offer_dict(offer, now_ts=None) -> dict:
    m = offer.merchant
    town = m.town
    return {
        "id": offer.id,
        "title": offer.title,
        "terms": offer.terms,
        "image_url": offer.image_url or None,
        "savings_cents": offer.savings_cents,
        "used_count": offer.redeemed_count,
        "total_limit": offer.total_limit,
        "days_left": offer.days_left(now_ts),
        "merchant": {
            "id": m.id,
            "name": m.name,
            "logo_url": m.logo_url or None,
            "address": m.street_address or None,
        },
        "area": {"slug": town.slug, "name": town.name} if town else None,
    }


# =========================
# Town gate (access codes)
# =========================

UNLOCKED_SESSION_KEY = "unlocked_towns"
UNLOCK_ATTEMPTS_SESSION_KEY = "town_unlock_attempts"
MAX_UNLOCK_ATTEMPTS = 5

MSG_TOWN_LOCKED = "Enter the access code to unlock this town."


def _unlocked_town_ids(request) -> set:
    """Towns opened in this session, plus the ones saved on the signed-in profile."""
    ids = set(request.session.get(UNLOCKED_SESSION_KEY, []))
    prof = get_profile(request.user)
    if prof:
        ids.update(prof.unlocked_towns.values_list("id", flat=True))
    return ids


def _town_open(town, unlocked: set) -> bool:
    return town is None or town.is_free or town.id in unlocked


def _locked_response():
    return JsonResponse({"ok": False, "error": MSG_TOWN_LOCKED, "locked": True}, status=403)


@require_GET
def towns_list(request):
    unlocked = _unlocked_town_ids(request)
    towns = [
        {
            "slug": t.slug,
            "name": t.name,
            "is_free": t.is_free,
            "unlocked": _town_open(t, unlocked),
        }
        for t in Town.objects.order_by("name")
    ]
    return JsonResponse({"ok": True, "towns": towns})


@require_POST
@never_cache
def area_unlock(request):
    """
    IN  : { "slug": "<town slug>", "code": "<4-digit access code>" }
    OUT : { ok, town } and the town stays open for this session
          (and on the profile when signed in)
    """
    try:
        body = json.loads(request.body.decode("utf-8") or "{}")
    except (ValueError, UnicodeDecodeError):
        return JsonResponse({"ok": False, "error": "Invalid JSON"}, status=400)
    if not isinstance(body, dict):
        return JsonResponse({"ok": False, "error": "Invalid JSON"}, status=400)

    slug = str(body.get("slug") or "").strip()
    code = str(body.get("code") or "").strip()
    if not slug or not code:
        return JsonResponse({"ok": False, "error": "Choose a town and enter its access code."}, status=400)

    attempts = int(request.session.get(UNLOCK_ATTEMPTS_SESSION_KEY, 0))
    if attempts >= MAX_UNLOCK_ATTEMPTS:
        return JsonResponse({"ok": False, "error": "Too many attempts. Please try again later."}, status=429)

    town = Town.objects.filter(slug=slug).first()
    if not town:
        return JsonResponse({"ok": False, "error": "Town not found."}, status=404)

    if not town.is_free and not constant_time_compare(town.access_code, code):
        request.session[UNLOCK_ATTEMPTS_SESSION_KEY] = attempts + 1
        return JsonResponse({"ok": False, "error": "Invalid access code."}, status=400)

    unlocked = set(request.session.get(UNLOCKED_SESSION_KEY, []))
    unlocked.add(town.id)
    request.session[UNLOCKED_SESSION_KEY] = sorted(unlocked)
    request.session[UNLOCK_ATTEMPTS_SESSION_KEY] = 0

    prof = get_profile(request.user)
    if prof:
        prof.unlocked_towns.add(town)

    return JsonResponse({"ok": True, "town": {"slug": town.slug, "name": town.name}})


# =========================
# Browse
# =========================

@require_GET
def offers_list(request):
    """
    Live deals, newest first, from towns the viewer can see.
    ?town=<slug> narrows to one area; a locked town answers 403.
    """
    now_ts = timezone.now()
    qs = _live_offers_qs(now_ts)
    unlocked = _unlocked_town_ids(request)

    slug = (request.GET.get("town") or "").strip()
    if slug:
        town = Town.objects.filter(slug=slug).first()
        if not town:
            return JsonResponse({"ok": False, "error": "Town not found."}, status=404)
        if not _town_open(town, unlocked):
            return _locked_response()
        qs = qs.filter(merchant__town=town)
    else:
        qs = qs.filter(
            Q(merchant__town__isnull=True)
            | Q(merchant__town__is_free=True)
            | Q(merchant__town_id__in=unlocked)
        )

    offers = [_offer_dict(o, now_ts) for o in qs.order_by("-created_at")]
    return JsonResponse({"ok": True, "offers": offers})


@require_GET
def offer_detail(request, offer_id: int):
    offer = Offer.objects.select_related("merchant", "merchant__town").filter(pk=offer_id).first()
    if not offer:
        return JsonResponse({"ok": False, "error": "Offer not found."}, status=404)
    if not _town_open(offer.merchant.town, _unlocked_town_ids(request)):
        return _locked_response()

    data = _offer_dict(offer)
    data["is_live"] = offer.is_live()
    return JsonResponse({"ok": True, "offer": data})


# =========================
# Claim (token) issue + polling
# =========================

@require_POST
@never_cache
@require_login_json
def offer_claim(request, offer_id: int):
    """
    USER SIDE:
      - consumer taps "Show QR"
      - returns token + manual code + QR payload (TTL in seconds)
    """
    offer = Offer.objects.select_related("merchant", "merchant__town").filter(pk=offer_id).first()
    if not offer:
        return JsonResponse({"ok": False, "error": "Offer not found."}, status=404)
    if not _town_open(offer.merchant.town, _unlocked_town_ids(request)):
        return _locked_response()

    result = issue_claim(user=request.user, offer=offer)
    return JsonResponse(result.as_payload(), status=result.status)


@require_GET
@require_login_json
@never_cache
@cache_control(no_cache=True, no_store=True, must_revalidate=True)
def claim_status(request, claim_id: int):
    row = (
        Claim.objects
        .filter(id=int(claim_id), user_id=request.user.id)
        .only("id", "status", "expires_at", "consumed_at")
        .first()
    )
    if not row:
        return JsonResponse({"ok": False, "error": "not_found"}, status=404)

    status = row.status
    if status == Claim.STATUS_ISSUED and row.is_expired():
        status = Claim.STATUS_EXPIRED

    return JsonResponse({
        "ok": True,
        "claim_id": row.id,
        "status": status,
        "used": status == Claim.STATUS_REDEEMED,
        "consumed_at": row.consumed_at.isoformat() if row.consumed_at else None,
    })


@require_GET
@require_login_json
def my_redemptions(request):
    rows = (
        Redemption.objects
        .filter(user_id=request.user.id)
        .select_related("offer", "merchant")
        .order_by("-redeemed_at")[:100]
    )
    prof = get_profile(request.user)
    return JsonResponse({
        "ok": True,
        "paid": bool(prof.paid),
        "redemptions": [
            {
                "id": r.id,
                "offer_title": r.offer.title,
                "merchant_name": r.merchant.name,
                "savings_cents": r.offer.savings_cents,
                "redeemed_at": r.redeemed_at.isoformat(),
            }
            for r in rows
        ],
    })
