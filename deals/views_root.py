from django.shortcuts import redirect
from django.urls import reverse
from django.views.decorators.cache import never_cache
from django.utils.http import url_has_allowed_host_and_scheme

from .guards.access import get_profile, is_admin
from .models import Profile


def _safe_next(request):
    nxt = request.GET.get("next") or "/"
    if url_has_allowed_host_and_scheme(nxt, allowed_hosts={request.get_host()}, require_https=request.is_secure()):
        return nxt
    return "/"


@never_cache
def root_router(request):
    # 1) Not logged in → login, keeping a safe ?next=
    if not request.user.is_authenticated:
        url = reverse("admin:login")
        nxt = _safe_next(request)
        return redirect(f"{url}?next={nxt}" if nxt and nxt != "/" else url)

    # 2) Admin → back office
    if is_admin(request.user):
        return redirect(reverse("admin:index"))

    # 3) Merchant staff → dashboard, everyone else → deals
    prof = get_profile(request.user)
    if prof.role == Profile.ROLE_MERCHANT or prof.merchant_id:
        return redirect(reverse("deals:merchant_dashboard"))
    return redirect(reverse("deals:offers_list"))
