# deals/services/token_issuer.py

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from deals.models import Claim, Profile
from deals.services.limits import check_limits
from deals.token_utils import claim_qr_payload, generate_manual_code

logger = logging.getLogger(__name__)


@dataclass
class IssueResult:
    ok: bool
    error: str = ""
    status: int = 200
    claim: Optional[Claim] = None

    def as_payload(self) -> dict:
        if not self.ok:
            return {"ok": False, "error": self.error}
        c = self.claim
        return {
            "ok": True,
            "claim_id": c.id,
            "token": str(c.token),
            "manual_code": c.manual_code,
            "qr_payload": claim_qr_payload(c),
            "expires_at": c.expires_at.isoformat(),
            "expires_in": int((c.expires_at - c.created_at).total_seconds()),
        }


def is_entitled(profile, offer) -> bool:
    """Paid unlock check; free towns and the setting switch bypass it."""
    if not getattr(settings, "CLAIM_REQUIRE_PAID", True):
        return True
    town = getattr(offer.merchant, "town", None)
    if town is not None and town.is_free:
        return True
    return bool(profile and profile.paid)


def _fresh_manual_code(merchant_id: int, now_ts) -> str:
    # unique among live claims at this merchant; rare clashes just retry
    for _ in range(5):
        code = generate_manual_code()
        clash = Claim.objects.filter(
            merchant_id=merchant_id,
            manual_code=code,
            status=Claim.STATUS_ISSUED,
            expires_at__gt=now_ts,
        ).exists()
        if not clash:
            return code
    return code


def issue_claim(*, user, offer, now_ts=None, ttl_seconds: Optional[int] = None) -> IssueResult:
    """
    Consumer asked to redeem `offer`: write one short-lived Claim.

    Rejects:
      - anonymous users
      - users without the paid unlock (when required)
      - inactive / out-of-window offers
      - offers whose limits are already exhausted for this user
    """
    if not user or not getattr(user, "is_authenticated", False):
        return IssueResult(ok=False, error="Please sign in to redeem.", status=401)

    now_ts = now_ts or timezone.now()
    if ttl_seconds is None:
        ttl_seconds = int(getattr(settings, "CLAIM_TTL_SECONDS", 120))

    profile, _ = Profile.objects.get_or_create(user=user)

    if not is_entitled(profile, offer):
        return IssueResult(
            ok=False,
            error="Pay the one-time fee to unlock redemptions.",
            status=403,
        )

    if not offer.is_live(now_ts):
        return IssueResult(ok=False, error="Offer not active.", status=400)

    limit_error = check_limits(offer, user, now_ts)
    if limit_error:
        return IssueResult(ok=False, error=limit_error, status=409)

    try:
        with transaction.atomic():
            # old unused claims for this user+offer are dead now
            Claim.objects.filter(
                user_id=user.id,
                offer_id=offer.id,
                status=Claim.STATUS_ISSUED,
                expires_at__lte=now_ts,
            ).update(status=Claim.STATUS_EXPIRED)

            claim = Claim.objects.create(
                user=user,
                offer=offer,
                merchant_id=offer.merchant_id,
                manual_code=_fresh_manual_code(offer.merchant_id, now_ts),
                created_at=now_ts,
                expires_at=now_ts + timedelta(seconds=int(ttl_seconds)),
            )
    except DatabaseError:
        logger.exception("claim write failed user=%s offer=%s", user.id, offer.id)
        return IssueResult(ok=False, error="Failed to create token.", status=500)

    logger.info(
        "claim issued id=%s user=%s offer=%s ttl=%ss",
        claim.id, user.id, offer.id, ttl_seconds,
    )
    return IssueResult(ok=True, claim=claim)
