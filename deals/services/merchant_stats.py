# deals/services/merchant_stats.py for the merchant dashboard cards

from typing import Any, Dict

from django.db.models import Sum

from deals.models import Redemption

RECENT_LIMIT = 50


def build_merchant_dashboard(merchant) -> Dict[str, Any]:
    """
    Totals + the latest redemptions for one merchant.
    Savings are an estimate: the offer's savings_cents per redemption.
    """
    qs = Redemption.objects.filter(merchant_id=merchant.id)

    total = qs.count()
    unique_customers = qs.values("user_id").distinct().count()
    savings = qs.aggregate(s=Sum("offer__savings_cents"))["s"] or 0

    rows = qs.select_related("offer", "user").order_by("-redeemed_at", "-id")[:RECENT_LIMIT]
    recent = [
        {
            "id": r.id,
            "redeemed_at": r.redeemed_at.isoformat(),
            "customer_email": r.user.email or None,
            "offer_title": r.offer.title or "Offer",
            "savings_cents": r.offer.savings_cents or 0,
            "via": r.via,
        }
        for r in rows
    ]

    return {
        "merchant": {"id": merchant.id, "name": merchant.name or "Your venue"},
        "total_redemptions": total,
        "unique_customers": unique_customers,
        "estimated_savings_cents": savings,
        "redemptions": recent,
    }
