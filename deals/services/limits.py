# deals/services/limits.py

from typing import Optional

from django.utils import timezone

from deals.models import Redemption


def local_day_start(now_ts=None):
    """Midnight of the current local day (settings.TIME_ZONE) as an aware datetime."""
    now_ts = now_ts or timezone.now()
    local = timezone.localtime(now_ts)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def redemptions_today(offer, now_ts=None) -> int:
    return Redemption.objects.filter(
        offer_id=offer.id,
        redeemed_at__gte=local_day_start(now_ts),
    ).count()


def redemptions_by_user(offer, user) -> int:
    return Redemption.objects.filter(offer_id=offer.id, user_id=user.id).count()


def check_limits(offer, user, now_ts=None) -> Optional[str]:
    """
    None when the offer can take one more redemption from this user,
    otherwise the user-facing reason.
    """
    if offer.total_limit is not None and offer.redeemed_count >= offer.total_limit:
        return "Redemption limit reached: this deal is fully redeemed."

    if offer.daily_limit is not None and redemptions_today(offer, now_ts) >= offer.daily_limit:
        return "Redemption limit reached: today's allocation is used up. Try again tomorrow."

    if offer.per_user_limit is not None and redemptions_by_user(offer, user) >= offer.per_user_limit:
        return "Redemption limit reached: you've already used this deal."

    return None
