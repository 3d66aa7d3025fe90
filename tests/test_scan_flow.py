from datetime import timedelta

import pytest

from deals.models import Claim
from deals.services.redemption import MSG_ALREADY_USED, MSG_EXPIRED, MSG_NO_MERCHANT
from deals.services.scan_flow import ScanFlow, ScanState, ScanTransitionError
from deals.services.token_issuer import issue_claim
from deals.token_utils import claim_qr_payload


@pytest.fixture
def claim(consumer, offer, t0):
    return issue_claim(user=consumer, offer=offer, now_ts=t0).claim


# =========================
# Camera path
# =========================

def test_camera_scan_happy_path(db, claim, merchant, staff_user, t0):
    flow = ScanFlow()
    assert flow.state == ScanState.READY

    flow.open_camera()
    assert flow.state == ScanState.SCANNING

    flow.detect(claim_qr_payload(claim))
    assert flow.state == ScanState.DETECTED

    flow.redeem(merchant=merchant, staff_user=staff_user, now_ts=t0 + timedelta(seconds=30))
    assert flow.state == ScanState.SUCCESS

    out = flow.as_dict()
    assert out["ok"] is True
    assert out["state"] == "success"
    assert out["message"] == "Redemption successful"
    assert out["details"]["offer_title"] == "2-for-1 Coffee"
    assert "raw" not in out


@pytest.mark.parametrize("kwargs, message", [
    ({"camera_available": False}, "Camera API not available"),
    ({"secure_context": False}, "Insecure context"),
    ({"permission_granted": False}, "Camera unavailable"),
])
def test_camera_failures_end_in_error(kwargs, message):
    flow = ScanFlow().open_camera(**kwargs)
    assert flow.state == ScanState.ERROR
    assert flow.message == message
    assert flow.detail

    # "try again" is allowed straight from the error screen
    flow.open_camera()
    assert flow.state == ScanState.SCANNING
    assert flow.message == ""


def test_no_detector_falls_back_to_manual(db, claim, merchant, t0):
    flow = ScanFlow().open_camera(detector_supported=False)
    assert flow.state == ScanState.SCANNING
    assert flow.as_dict()["manual_only"] is True

    with pytest.raises(ScanTransitionError):
        flow.detect(str(claim.token))

    flow.enter_manual(f"  {claim.manual_code.lower()} ")
    assert flow.raw == claim.manual_code.lower()
    flow.redeem(merchant=merchant, now_ts=t0 + timedelta(seconds=1))
    assert flow.state == ScanState.SUCCESS

    claim.refresh_from_db()
    assert claim.used_via == Claim.VIA_CODE


# =========================
# Illegal moves
# =========================

def test_detect_requires_scanning():
    with pytest.raises(ScanTransitionError):
        ScanFlow().detect("ABCDE")


def test_redeem_requires_detected(merchant):
    with pytest.raises(ScanTransitionError):
        ScanFlow().redeem(merchant=merchant)


def test_manual_entry_blocked_after_terminal_state(db, merchant):
    flow = ScanFlow().enter_manual("ZZZZZ")
    flow.redeem(merchant=merchant)
    assert flow.state == ScanState.ERROR

    with pytest.raises(ScanTransitionError):
        flow.enter_manual("ABCDE")

    flow.reset()
    assert flow.state == ScanState.READY
    assert flow.as_dict() == {"ok": False, "state": "ready", "message": ""}
    flow.enter_manual("ABCDE")
    assert flow.state == ScanState.DETECTED


# =========================
# Redeem failures
# =========================

def test_missing_merchant_link(db):
    flow = ScanFlow().enter_manual("ABCDE").redeem(merchant=None)
    assert flow.state == ScanState.ERROR
    assert flow.message == "No merchant link"
    assert flow.detail == MSG_NO_MERCHANT
    assert flow.status == 403


def test_unparseable_input(db, merchant):
    flow = ScanFlow().open_camera().detect("hello there").redeem(merchant=merchant)
    out = flow.as_dict()
    assert out["state"] == "error"
    assert out["message"] == "Redeem failed"
    assert out["detail"] == "Unrecognised code"
    assert out["raw"] == "hello there"
    assert flow.status == 400


def test_expired_claim_reports_service_error(claim, merchant, t0):
    flow = ScanFlow().open_camera().detect(str(claim.token))
    flow.redeem(merchant=merchant, now_ts=t0 + timedelta(minutes=3))
    assert flow.detail == MSG_EXPIRED
    assert flow.status == 410


def test_second_scan_of_same_claim(claim, merchant, t0):
    first = ScanFlow().open_camera().detect(str(claim.token))
    first.redeem(merchant=merchant, now_ts=t0 + timedelta(seconds=5))
    assert first.state == ScanState.SUCCESS

    second = ScanFlow().enter_manual(claim.manual_code)
    second.redeem(merchant=merchant, now_ts=t0 + timedelta(seconds=6))
    assert second.state == ScanState.ERROR
    assert second.detail == MSG_ALREADY_USED
    assert second.status == 409
