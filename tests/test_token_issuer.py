import json
import re
from datetime import timedelta

import pytest
from django.contrib.auth.models import AnonymousUser

from deals.models import Claim, Offer
from deals.services.token_issuer import is_entitled, issue_claim

pytestmark = pytest.mark.django_db


def test_issue_returns_token_code_and_ttl(consumer, offer, t0):
    res = issue_claim(user=consumer, offer=offer, now_ts=t0)

    assert res.ok and res.status == 200
    payload = res.as_payload()
    assert payload["ok"] is True
    assert re.fullmatch(r"[A-Z0-9]{5}", payload["manual_code"])
    assert payload["expires_in"] == 120
    assert json.loads(payload["qr_payload"]) == {"token": payload["token"]}

    claim = Claim.objects.get(pk=payload["claim_id"])
    assert claim.status == Claim.STATUS_ISSUED
    assert claim.merchant_id == offer.merchant_id
    assert claim.expires_at == t0 + timedelta(seconds=120)


def test_ttl_follows_setting(settings, consumer, offer, t0):
    settings.CLAIM_TTL_SECONDS = 30
    res = issue_claim(user=consumer, offer=offer, now_ts=t0)
    assert res.as_payload()["expires_in"] == 30


def test_anonymous_rejected(offer):
    res = issue_claim(user=AnonymousUser(), offer=offer)
    assert not res.ok
    assert res.status == 401
    assert res.as_payload() == {"ok": False, "error": "Please sign in to redeem."}


def test_unpaid_rejected(unpaid_consumer, offer):
    res = issue_claim(user=unpaid_consumer, offer=offer)
    assert res.status == 403
    assert "unlock" in res.error
    assert not Claim.objects.exists()


def test_free_town_waives_payment(unpaid_consumer, free_town, offer):
    offer.merchant.town = free_town
    offer.merchant.save()
    assert is_entitled(unpaid_consumer.profile, offer)
    assert issue_claim(user=unpaid_consumer, offer=offer).ok


def test_payment_switch_off(settings, unpaid_consumer, offer):
    settings.CLAIM_REQUIRE_PAID = False
    assert issue_claim(user=unpaid_consumer, offer=offer).ok


def test_inactive_offer_rejected(consumer, offer):
    offer.is_active = False
    offer.save()
    res = issue_claim(user=consumer, offer=offer)
    assert res.status == 400
    assert res.error == "Offer not active."


def test_offer_outside_window_rejected(consumer, offer, t0):
    offer.valid_to = t0 - timedelta(days=1)
    offer.save()
    assert issue_claim(user=consumer, offer=offer, now_ts=t0).status == 400

    offer.valid_to = None
    offer.valid_from = t0 + timedelta(days=1)
    offer.save()
    assert issue_claim(user=consumer, offer=offer, now_ts=t0).status == 400


def test_exhausted_offer_rejected_at_issue(consumer, offer):
    Offer.objects.filter(pk=offer.pk).update(total_limit=3, redeemed_count=3)
    offer.refresh_from_db()

    res = issue_claim(user=consumer, offer=offer)
    assert res.status == 409
    assert res.error.startswith("Redemption limit reached")


def test_reissue_retires_stale_claims(consumer, offer, t0):
    first = issue_claim(user=consumer, offer=offer, now_ts=t0).claim
    second = issue_claim(user=consumer, offer=offer, now_ts=t0 + timedelta(seconds=200)).claim

    first.refresh_from_db()
    assert first.status == Claim.STATUS_EXPIRED
    assert second.status == Claim.STATUS_ISSUED
    assert first.token != second.token
