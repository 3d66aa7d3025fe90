# === GUARD:ROLE_POLICY === single source of truth for consumer/merchant/admin access
from functools import wraps

from django.http import JsonResponse

from deals.models import Profile


def get_profile(user):
    """Profile for an authenticated user (created lazily for old accounts)."""
    if not getattr(user, "is_authenticated", False):
        return None
    prof = getattr(user, "profile", None)
    if prof is None:
        prof, _ = Profile.objects.get_or_create(user=user)
    return prof


def get_linked_merchant(user):
    prof = get_profile(user)
    return prof.merchant if prof else None


def is_admin(user) -> bool:
    if not getattr(user, "is_authenticated", False):
        return False
    if user.is_staff or user.is_superuser:
        return True
    prof = get_profile(user)
    return bool(prof and prof.role == Profile.ROLE_ADMIN)


def require_login_json(view_func):
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if request.user.is_authenticated:
            return view_func(request, *args, **kwargs)
        return JsonResponse({"ok": False, "error": "Please sign in."}, status=401)
    return _wrapped


def require_merchant_or_admin(view_func):
    """Merchant staff (role merchant or a merchant link) and admins only."""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"ok": False, "error": "Please sign in."}, status=401)
        prof = get_profile(request.user)
        ok = is_admin(request.user) or prof.role == Profile.ROLE_MERCHANT or prof.merchant_id
        if ok:
            return view_func(request, *args, **kwargs)
        return JsonResponse({"ok": False, "error": "Merchant access required."}, status=403)
    return _wrapped


def require_admin(view_func):
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"ok": False, "error": "Please sign in."}, status=401)
        if is_admin(request.user):
            return view_func(request, *args, **kwargs)
        return JsonResponse({"ok": False, "error": "Admin access required."}, status=403)
    return _wrapped
