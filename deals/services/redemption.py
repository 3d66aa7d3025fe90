# deals/services/redemption.py

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from deals.models import Claim, Offer, Redemption
from deals.services.limits import check_limits

logger = logging.getLogger(__name__)

MSG_NOT_FOUND = "Code not found."
MSG_WRONG_MERCHANT = "This code belongs to a different merchant."
MSG_ALREADY_USED = "This code has already been used."
MSG_EXPIRED = "This code has expired."
MSG_OFFER_INACTIVE = "Offer not active."
MSG_NO_MERCHANT = "Your account is not linked to a merchant. Contact admin."
MSG_SUCCESS = "Redemption successful"


@dataclass
class RedeemResult:
    ok: bool
    message: str = ""
    error: str = ""
    status: int = 200
    claim_id: Optional[int] = None
    redemption_id: Optional[int] = None
    details: dict = field(default_factory=dict)


class _Abort(Exception):
    """Raised inside the atomic block to roll back with a ready result."""

    def __init__(self, result: RedeemResult):
        super().__init__(result.error)
        self.result = result


def _fail(error: str, status: int, claim: Optional[Claim] = None) -> RedeemResult:
    return RedeemResult(ok=False, error=error, status=status, claim_id=getattr(claim, "id", None))


def _lookup(qs, *, merchant, token, code):
    if token:
        try:
            tok = uuid.UUID(str(token))
        except (ValueError, TypeError):
            return None
        return qs.filter(token=tok).first()
    return (
        qs.filter(merchant_id=merchant.id, manual_code=str(code).strip().upper())
        .order_by("-created_at", "-id")
        .first()
    )


def redeem(*, merchant, token=None, code=None, staff_user=None, now_ts=None) -> RedeemResult:
    """
    Counter-side validation: one atomic check-and-write per claim.

    Atomic:
      - lock Claim (+ Offer)
      - validate merchant / not used / not expired / offer live / limits
      - compare-and-set Claim issued -> redeemed
      - guarded bump of Offer.redeemed_count
      - create the Redemption row

    Token and manual code lookups end in the same path, so both inputs give
    identical outcomes for the same claim.
    """
    if merchant is None:
        return _fail(MSG_NO_MERCHANT, 403)

    if not token and not code:
        return _fail("No code provided.", 400)

    now_ts = now_ts or timezone.now()
    via = Claim.VIA_SCAN if token else Claim.VIA_CODE

    try:
        with transaction.atomic():
            qs = Claim.objects.select_for_update().select_related("offer", "user")
            claim = _lookup(qs, merchant=merchant, token=token, code=code)

            if claim is None:
                return _fail(MSG_NOT_FOUND, 404)

            if claim.merchant_id != merchant.id:
                return _fail(MSG_WRONG_MERCHANT, 403, claim)

            if claim.status == Claim.STATUS_REDEEMED:
                return _fail(MSG_ALREADY_USED, 409, claim)

            if claim.status == Claim.STATUS_EXPIRED or claim.is_expired(now_ts):
                if claim.status == Claim.STATUS_ISSUED:
                    Claim.objects.filter(pk=claim.pk, status=Claim.STATUS_ISSUED).update(
                        status=Claim.STATUS_EXPIRED,
                    )
                return _fail(MSG_EXPIRED, 410, claim)

            offer = Offer.objects.select_for_update().get(pk=claim.offer_id)

            if not offer.is_live(now_ts):
                return _fail(MSG_OFFER_INACTIVE, 400, claim)

            limit_error = check_limits(offer, claim.user, now_ts)
            if limit_error:
                return _fail(limit_error, 409, claim)

            # compare-and-set: only one caller can move this row out of "issued"
            won = Claim.objects.filter(
                pk=claim.pk,
                status=Claim.STATUS_ISSUED,
                expires_at__gt=now_ts,
            ).update(
                status=Claim.STATUS_REDEEMED,
                consumed_at=now_ts,
                used_via=via,
                redeemed_by=staff_user,
            )
            if won != 1:
                return _fail(MSG_ALREADY_USED, 409, claim)

            bumped = (
                Offer.objects
                .filter(pk=offer.pk)
                .filter(Q(total_limit__isnull=True) | Q(redeemed_count__lt=F("total_limit")))
                .update(redeemed_count=F("redeemed_count") + 1)
            )
            if bumped != 1:
                raise _Abort(_fail("Redemption limit reached: this deal is fully redeemed.", 409, claim))

            redemption = Redemption.objects.create(
                claim_id=claim.pk,
                user_id=claim.user_id,
                merchant_id=claim.merchant_id,
                offer_id=offer.pk,
                via=via,
                redeemed_at=now_ts,
            )
    except _Abort as abort:
        return abort.result
    except IntegrityError:
        # unique(claim) tripped: someone else wrote the redemption first
        logger.warning("duplicate redemption blocked token=%s code=%s", token, code)
        return _fail(MSG_ALREADY_USED, 409)
    except DatabaseError:
        logger.exception("redeem failed merchant=%s", merchant.id)
        return _fail("Redeem failed. Please try again.", 500)

    logger.info(
        "claim redeemed id=%s offer=%s merchant=%s via=%s",
        claim.pk, offer.pk, merchant.id, via,
    )
    return RedeemResult(
        ok=True,
        message=MSG_SUCCESS,
        claim_id=claim.pk,
        redemption_id=redemption.pk,
        details={
            "offer_title": offer.title,
            "manual_code": claim.manual_code,
            "savings_cents": offer.savings_cents,
        },
    )
