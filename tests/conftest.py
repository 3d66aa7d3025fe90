from datetime import datetime, timezone as dt_timezone

import pytest
from django.contrib.auth import get_user_model

from deals.models import Merchant, Offer, Profile, Town

User = get_user_model()

# 13:00 in Sydney, far from a local midnight rollover
T0 = datetime(2026, 3, 10, 2, 0, tzinfo=dt_timezone.utc)


@pytest.fixture(autouse=True)
def _isolated_settings(settings):
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.RESEND_API_KEY = ""
    settings.TWILIO_ACCOUNT_SID = ""
    settings.TWILIO_AUTH_TOKEN = ""
    settings.TWILIO_FROM = ""
    settings.CLAIM_TTL_SECONDS = 120
    settings.CLAIM_REQUIRE_PAID = True
    settings.TIME_ZONE = "Australia/Sydney"


def make_user(username, *, paid=False, role=None, merchant=None, **extra):
    user = User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="pw-12345-secret",
        **extra,
    )
    prof = user.profile
    prof.paid = paid
    if role:
        prof.role = role
    if merchant is not None:
        prof.merchant = merchant
    prof.save()
    return user


@pytest.fixture
def town(db):
    return Town.objects.create(name="Bowral", slug="bowral")


@pytest.fixture
def free_town(db):
    return Town.objects.create(name="Mittagong", slug="mittagong", is_free=True)


@pytest.fixture
def merchant(town):
    return Merchant.objects.create(name="Corner Cafe", category="Cafe & Bakery", town=town)


@pytest.fixture
def other_merchant(town):
    return Merchant.objects.create(name="Barber Shop", category="Hair & Beauty", town=town)


@pytest.fixture
def offer(merchant):
    return Offer.objects.create(merchant=merchant, title="2-for-1 Coffee", savings_cents=550)


@pytest.fixture
def consumer(db):
    return make_user("alice", paid=True)


@pytest.fixture
def second_consumer(db):
    return make_user("bob", paid=True)


@pytest.fixture
def unpaid_consumer(db):
    return make_user("carol", paid=False)


@pytest.fixture
def staff_user(merchant):
    return make_user("barista", role=Profile.ROLE_MERCHANT, merchant=merchant)


@pytest.fixture
def admin_user(db):
    return make_user("boss", is_staff=True, is_superuser=True)


@pytest.fixture
def user_factory(db):
    return make_user


@pytest.fixture
def t0():
    return T0
