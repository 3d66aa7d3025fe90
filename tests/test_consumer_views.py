import json
from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from deals.models import Claim, Merchant, Offer, Town
from deals.services.redemption import redeem

pytestmark = pytest.mark.django_db

WRONG_CODE = "0000"


def _unlock(client, town, code=None):
    data = {"slug": town.slug, "code": town.access_code if code is None else code}
    return client.post(reverse("deals:area_unlock"), data=json.dumps(data), content_type="application/json")


@pytest.fixture
def unlocked_consumer(consumer, town):
    consumer.profile.unlocked_towns.add(town)
    return consumer


# =========================
# Town gate
# =========================

def test_locked_town_hides_its_offers(client, offer, town):
    assert client.get(reverse("deals:offers_list")).json()["offers"] == []

    resp = client.get(reverse("deals:offers_list"), {"town": town.slug})
    assert resp.status_code == 403
    assert resp.json()["locked"] is True

    assert client.get(reverse("deals:offer_detail", args=[offer.id])).status_code == 403


def test_unlock_with_access_code_opens_town_for_session(client, offer, town):
    resp = _unlock(client, town)
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "town": {"slug": "bowral", "name": "Bowral"}}

    titles = [o["title"] for o in client.get(reverse("deals:offers_list")).json()["offers"]]
    assert titles == ["2-for-1 Coffee"]
    assert client.get(reverse("deals:offer_detail", args=[offer.id])).status_code == 200


def test_unlock_is_saved_on_signed_in_profile(client, consumer, offer, town):
    client.force_login(consumer)
    assert _unlock(client, town).status_code == 200
    assert list(consumer.profile.unlocked_towns.all()) == [town]

    # a fresh session still sees the town
    client.logout()
    client.force_login(consumer)
    resp = client.get(reverse("deals:offers_list"), {"town": town.slug})
    assert resp.status_code == 200
    assert len(resp.json()["offers"]) == 1


def test_wrong_code_then_lockout(client, town):
    resp = _unlock(client, town, code=WRONG_CODE)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid access code."

    for _ in range(4):
        _unlock(client, town, code=WRONG_CODE)

    # even the right code is refused once the attempts are used up
    resp = _unlock(client, town)
    assert resp.status_code == 429
    assert client.get(reverse("deals:offers_list"), {"town": town.slug}).status_code == 403


def test_unlock_validation(client, town):
    url = reverse("deals:area_unlock")
    assert client.post(url, data="{nope", content_type="application/json").status_code == 400
    assert client.post(url, data=json.dumps({"slug": "bowral"}), content_type="application/json").status_code == 400
    missing = client.post(url, data=json.dumps({"slug": "nowhere", "code": "1234"}), content_type="application/json")
    assert missing.status_code == 404


def test_free_town_needs_no_code(client, free_town):
    m = Merchant.objects.create(name="Bike Hire", category="Recreation", town=free_town)
    Offer.objects.create(merchant=m, title="Half-price hour")

    data = client.get(reverse("deals:offers_list"), {"town": "mittagong"}).json()
    assert [o["title"] for o in data["offers"]] == ["Half-price hour"]


def test_towns_list_flags(client, town, free_town):
    towns = {t["slug"]: t for t in client.get(reverse("deals:towns_list")).json()["towns"]}
    assert towns["bowral"]["unlocked"] is False
    assert towns["mittagong"]["unlocked"] is True
    assert "access_code" not in towns["bowral"]

    _unlock(client, town)
    towns = {t["slug"]: t for t in client.get(reverse("deals:towns_list")).json()["towns"]}
    assert towns["bowral"]["unlocked"] is True


# =========================
# Browse
# =========================

def test_offers_list_shows_only_live_offers(client, offer, merchant, town):
    Offer.objects.create(merchant=merchant, title="Old deal", is_active=False)
    Offer.objects.create(merchant=merchant, title="Ended", valid_to=timezone.now() - timedelta(days=1))
    _unlock(client, town)

    resp = client.get(reverse("deals:offers_list"))
    assert resp.status_code == 200
    titles = [o["title"] for o in resp.json()["offers"]]
    assert titles == ["2-for-1 Coffee"]


def test_offers_list_filters_by_town(client, offer, town):
    elsewhere = Town.objects.create(name="Moss Vale", slug="moss-vale")
    m = Merchant.objects.create(name="Gym", category="Fitness", town=elsewhere)
    Offer.objects.create(merchant=m, title="Free class")
    _unlock(client, town)
    _unlock(client, elsewhere)

    data = client.get(reverse("deals:offers_list"), {"town": "moss-vale"}).json()
    assert [o["title"] for o in data["offers"]] == ["Free class"]
    assert data["offers"][0]["area"] == {"slug": "moss-vale", "name": "Moss Vale"}

    assert client.get(reverse("deals:offers_list"), {"town": "nowhere"}).status_code == 404


def test_offer_detail(client, offer, town):
    _unlock(client, town)
    resp = client.get(reverse("deals:offer_detail", args=[offer.id]))
    body = resp.json()
    assert body["offer"]["is_live"] is True
    assert body["offer"]["merchant"]["name"] == "Corner Cafe"

    missing = client.get(reverse("deals:offer_detail", args=[99999]))
    assert missing.status_code == 404
    assert missing.json()["error"] == "Offer not found."


# =========================
# Claim
# =========================

def test_claim_requires_login(client, offer):
    resp = client.post(reverse("deals:offer_claim", args=[offer.id]))
    assert resp.status_code == 401


def test_claim_blocked_in_locked_town(client, consumer, offer):
    client.force_login(consumer)
    resp = client.post(reverse("deals:offer_claim", args=[offer.id]))
    assert resp.status_code == 403
    assert resp.json()["locked"] is True
    assert not Claim.objects.exists()


def test_claim_returns_token(client, unlocked_consumer, offer):
    client.force_login(unlocked_consumer)
    resp = client.post(reverse("deals:offer_claim", args=[offer.id]))

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["expires_in"] == 120
    assert Claim.objects.get(pk=body["claim_id"]).user_id == unlocked_consumer.id


def test_claim_unpaid_and_missing_offer(client, unpaid_consumer, offer, town):
    unpaid_consumer.profile.unlocked_towns.add(town)
    client.force_login(unpaid_consumer)
    assert client.post(reverse("deals:offer_claim", args=[offer.id])).status_code == 403
    resp = client.post(reverse("deals:offer_claim", args=[99999]))
    assert resp.status_code == 404
    assert resp.json()["error"] == "Offer not found."


def test_claim_rejects_get(client, consumer, offer):
    client.force_login(consumer)
    assert client.get(reverse("deals:offer_claim", args=[offer.id])).status_code == 405


# =========================
# Status polling
# =========================

def _claim_id(client, offer):
    return client.post(reverse("deals:offer_claim", args=[offer.id])).json()["claim_id"]


def test_claim_status_follows_redemption(client, unlocked_consumer, merchant, offer):
    client.force_login(unlocked_consumer)
    claim_id = _claim_id(client, offer)
    url = reverse("deals:claim_status", args=[claim_id])

    body = client.get(url).json()
    assert body["status"] == "issued"
    assert body["used"] is False

    claim = Claim.objects.get(pk=claim_id)
    assert redeem(merchant=merchant, code=claim.manual_code).ok

    body = client.get(url).json()
    assert body["status"] == "redeemed"
    assert body["used"] is True
    assert body["consumed_at"]


def test_claim_status_reports_lapsed_claim_as_expired(client, unlocked_consumer, offer):
    client.force_login(unlocked_consumer)
    claim_id = _claim_id(client, offer)
    Claim.objects.filter(pk=claim_id).update(expires_at=timezone.now() - timedelta(seconds=1))

    assert client.get(reverse("deals:claim_status", args=[claim_id])).json()["status"] == "expired"


def test_claim_status_hides_other_users_claims(client, unlocked_consumer, second_consumer, offer):
    client.force_login(unlocked_consumer)
    claim_id = _claim_id(client, offer)

    client.force_login(second_consumer)
    assert client.get(reverse("deals:claim_status", args=[claim_id])).status_code == 404


def test_my_redemptions(client, unlocked_consumer, merchant, offer):
    client.force_login(unlocked_consumer)
    claim_id = _claim_id(client, offer)
    redeem(merchant=merchant, token=str(Claim.objects.get(pk=claim_id).token))

    body = client.get(reverse("deals:my_redemptions")).json()
    assert body["paid"] is True
    assert len(body["redemptions"]) == 1
    assert body["redemptions"][0]["offer_title"] == "2-for-1 Coffee"
    assert body["redemptions"][0]["savings_cents"] == 550
