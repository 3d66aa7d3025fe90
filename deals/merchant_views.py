# deals/merchant_views.py

import json

from django.http import HttpRequest, JsonResponse
from django.views.decorators.cache import cache_control, never_cache
from django.views.decorators.http import require_GET, require_POST

from .guards.access import get_linked_merchant, is_admin, require_merchant_or_admin
from .models import Merchant
from .services.merchant_stats import build_merchant_dashboard
from .services.scan_flow import ScanFlow
from .token_utils import merchant_qr_payload


def _json(req: HttpRequest):
    try:
        return json.loads(req.body.decode("utf-8") or "{}")
    except (ValueError, UnicodeDecodeError):
        return {}


def _resolve_merchant(request):
    """Linked merchant; admins may act for any merchant via ?merchant=<id>."""
    if is_admin(request.user):
        mid = (request.GET.get("merchant") or "").strip()
        if mid.isdigit():
            return Merchant.objects.filter(pk=int(mid)).first()
    return get_linked_merchant(request.user)


# ===== Views =====

@require_POST
@never_cache
@require_merchant_or_admin
def scan_redeem(request):
    """
    IN  : { "raw": "<QR content | 5-char code | JSON>", "manual": bool }
    OUT : scan flow final state (success | error)
    """
    data = _json(request)
    raw = str(data.get("raw") or data.get("code") or data.get("token") or "").strip()
    if not raw:
        return JsonResponse({"ok": False, "state": "error", "error": "No code provided."}, status=400)

    flow = ScanFlow()
    if data.get("manual"):
        flow.enter_manual(raw)
    else:
        flow.open_camera()
        flow.detect(raw)

    flow.redeem(merchant=_resolve_merchant(request), staff_user=request.user)

    payload = flow.as_dict()
    if not payload["ok"]:
        payload["error"] = flow.detail or flow.message
    return JsonResponse(payload, status=flow.status)


@require_GET
@never_cache
@require_merchant_or_admin
def dashboard(request):
    merchant = _resolve_merchant(request)
    if not merchant:
        return JsonResponse({"ok": False, "error": "No merchant linked to this account."}, status=404)

    return JsonResponse({"ok": True, **build_merchant_dashboard(merchant)})


@require_GET
@never_cache
@cache_control(no_cache=True, no_store=True, must_revalidate=True)
@require_merchant_or_admin
def qr_poster(request):
    merchant = _resolve_merchant(request)
    if not merchant:
        return JsonResponse({"ok": False, "error": "No merchant linked to this account."}, status=404)

    return JsonResponse({
        "ok": True,
        "merchant_id": merchant.id,
        "name": merchant.name,
        "merchant_pin": merchant.merchant_pin,
        "qr_payload": merchant_qr_payload(merchant),
    })
