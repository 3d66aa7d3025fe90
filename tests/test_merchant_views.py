import json

import pytest
from django.urls import reverse

from deals.models import Claim, Redemption
from deals.services.redemption import MSG_ALREADY_USED, MSG_NO_MERCHANT
from deals.services.token_issuer import issue_claim
from deals.token_utils import claim_qr_payload

pytestmark = pytest.mark.django_db

SCAN_URL = "deals:merchant_scan_redeem"


def _post(client, data):
    return client.post(reverse(SCAN_URL), data=json.dumps(data), content_type="application/json")


@pytest.fixture
def claim(consumer, offer):
    return issue_claim(user=consumer, offer=offer).claim


# =========================
# Access
# =========================

def test_scan_requires_login(client):
    assert _post(client, {"raw": "ABCDE"}).status_code == 401


def test_scan_rejects_consumers(client, consumer):
    client.force_login(consumer)
    resp = _post(client, {"raw": "ABCDE"})
    assert resp.status_code == 403
    assert resp.json()["error"] == "Merchant access required."


def test_scan_rejects_get(client, staff_user):
    client.force_login(staff_user)
    assert client.get(reverse(SCAN_URL)).status_code == 405


# =========================
# Redeem at the counter
# =========================

def test_scan_qr_payload(client, staff_user, claim):
    client.force_login(staff_user)
    resp = _post(client, {"raw": claim_qr_payload(claim)})

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["state"] == "success"
    assert body["details"]["manual_code"] == claim.manual_code

    claim.refresh_from_db()
    assert claim.status == Claim.STATUS_REDEEMED
    assert claim.redeemed_by_id == staff_user.id


def test_manual_code_then_replay(client, staff_user, claim):
    client.force_login(staff_user)
    first = _post(client, {"raw": claim.manual_code.lower(), "manual": True})
    assert first.status_code == 200

    replay = _post(client, {"raw": str(claim.token)})
    assert replay.status_code == 409
    body = replay.json()
    assert body["ok"] is False
    assert body["state"] == "error"
    assert body["error"] == MSG_ALREADY_USED
    assert Redemption.objects.count() == 1


def test_manual_box_accepts_pasted_qr_payload(client, staff_user, claim):
    # staff paste the scanned JSON into the manual field
    client.force_login(staff_user)
    resp = _post(client, {"raw": claim_qr_payload(claim), "manual": True})

    assert resp.status_code == 200
    assert resp.json()["state"] == "success"
    claim.refresh_from_db()
    assert claim.used_via == Claim.VIA_SCAN


def test_manual_box_accepts_redeem_url(client, staff_user, claim):
    client.force_login(staff_user)
    resp = _post(client, {"raw": f"https://todaysstash.com.au/r/{claim.token}", "manual": True})
    assert resp.status_code == 200
    assert Redemption.objects.filter(claim=claim).count() == 1


def test_scan_empty_and_bad_json(client, staff_user):
    client.force_login(staff_user)
    assert _post(client, {"raw": "  "}).status_code == 400
    resp = client.post(reverse(SCAN_URL), data="{not json", content_type="application/json")
    assert resp.status_code == 400
    assert resp.json()["error"] == "No code provided."


def test_scan_unrecognised_input(client, staff_user):
    client.force_login(staff_user)
    resp = _post(client, {"raw": "https://example.com/menu"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Unrecognised code"


def test_admin_without_merchant_link(client, admin_user, claim):
    client.force_login(admin_user)
    resp = _post(client, {"raw": claim.manual_code, "manual": True})
    assert resp.status_code == 403
    assert resp.json()["error"] == MSG_NO_MERCHANT


def test_admin_can_scan_for_a_merchant(client, admin_user, merchant, claim):
    client.force_login(admin_user)
    url = f"{reverse(SCAN_URL)}?merchant={merchant.id}"
    resp = client.post(url, data=json.dumps({"raw": str(claim.token)}), content_type="application/json")
    assert resp.status_code == 200


# =========================
# Dashboard + poster
# =========================

def test_dashboard_totals(client, staff_user, merchant, offer, consumer, second_consumer):
    client.force_login(staff_user)
    for user in (consumer, second_consumer):
        c = issue_claim(user=user, offer=offer).claim
        _post(client, {"raw": c.manual_code, "manual": True})

    body = client.get(reverse("deals:merchant_dashboard")).json()
    assert body["ok"] is True
    assert body["merchant"]["name"] == "Corner Cafe"
    assert body["total_redemptions"] == 2
    assert body["unique_customers"] == 2
    assert body["estimated_savings_cents"] == 1100
    assert {r["customer_email"] for r in body["redemptions"]} == {"alice@example.com", "bob@example.com"}


def test_dashboard_for_admin_needs_merchant(client, admin_user, merchant):
    client.force_login(admin_user)
    assert client.get(reverse("deals:merchant_dashboard")).status_code == 404
    resp = client.get(reverse("deals:merchant_dashboard"), {"merchant": merchant.id})
    assert resp.status_code == 200
    assert resp.json()["total_redemptions"] == 0


def test_poster(client, staff_user, merchant):
    client.force_login(staff_user)
    body = client.get(reverse("deals:merchant_poster")).json()
    assert body["merchant_pin"] == merchant.merchant_pin
    assert json.loads(body["qr_payload"]) == {"merchant_pin": merchant.merchant_pin}
