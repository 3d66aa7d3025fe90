"""
Counter-side scan session.

Mirrors what the staff device goes through, so the server can drive and
report it: ready -> opening-camera -> scanning -> detected -> redeeming ->
success | error. Every failure is terminal for the attempt; `reset()` starts
a new one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from deals.services.redemption import MSG_NO_MERCHANT, redeem
from deals.token_utils import parse_scan_input


class ScanState(Enum):
    READY = "ready"
    OPENING_CAMERA = "opening-camera"
    SCANNING = "scanning"
    DETECTED = "detected"
    REDEEMING = "redeeming"
    SUCCESS = "success"
    ERROR = "error"


TERMINAL = (ScanState.SUCCESS, ScanState.ERROR)


class ScanTransitionError(ValueError):
    pass


@dataclass
class ScanFlow:
    state: ScanState = ScanState.READY
    raw: Optional[str] = None
    manual_only: bool = False
    message: str = ""
    detail: str = ""
    status: int = 200
    details: dict = field(default_factory=dict)

    def _move(self, allowed, target: ScanState) -> None:
        if self.state not in allowed:
            raise ScanTransitionError(f"cannot go {self.state.value} -> {target.value}")
        self.state = target

    def _error(self, message: str, detail: str = "", status: int = 400) -> "ScanFlow":
        self.state = ScanState.ERROR
        self.message = message
        self.detail = detail
        self.status = status
        return self

    def open_camera(
        self,
        *,
        camera_available: bool = True,
        secure_context: bool = True,
        permission_granted: bool = True,
        detector_supported: bool = True,
    ) -> "ScanFlow":
        # "Try camera again" from an error screen is allowed
        self._move((ScanState.READY, ScanState.ERROR), ScanState.OPENING_CAMERA)
        self.message = self.detail = ""

        if not camera_available:
            return self._error("Camera API not available", "Use Safari or Chrome on a secure site (https).")
        if not secure_context:
            return self._error("Insecure context", "Camera access requires HTTPS or localhost.")
        if not permission_granted:
            return self._error("Camera unavailable", "Could not start camera. Ensure you granted permission.")

        # no live detector -> keep the camera, staff types the manual code
        self.manual_only = not detector_supported
        self.state = ScanState.SCANNING
        return self

    def detect(self, raw: str) -> "ScanFlow":
        if self.manual_only:
            raise ScanTransitionError("live detection not supported, use the manual code")
        self._move((ScanState.SCANNING,), ScanState.DETECTED)
        self.raw = (raw or "").strip()
        return self

    def enter_manual(self, code: str) -> "ScanFlow":
        # manual entry works whatever the camera is doing
        if self.state in (ScanState.REDEEMING,) + TERMINAL:
            raise ScanTransitionError(f"cannot enter a code while {self.state.value}")
        self.state = ScanState.DETECTED
        self.raw = (code or "").strip()
        return self

    def redeem(self, *, merchant, staff_user=None, now_ts=None) -> "ScanFlow":
        self._move((ScanState.DETECTED,), ScanState.REDEEMING)

        if merchant is None:
            return self._error("No merchant link", MSG_NO_MERCHANT, status=403)

        try:
            parsed = parse_scan_input(self.raw)
        except ValueError as e:
            return self._error("Redeem failed", str(e), status=400)

        if parsed.kind == "code":
            result = redeem(merchant=merchant, code=parsed.value, staff_user=staff_user, now_ts=now_ts)
        else:
            result = redeem(merchant=merchant, token=parsed.value, staff_user=staff_user, now_ts=now_ts)

        if not result.ok:
            return self._error("Redeem failed", result.error, status=result.status)

        self.state = ScanState.SUCCESS
        self.message = result.message
        self.detail = ""
        self.status = 200
        self.details = dict(result.details)
        return self

    def reset(self) -> "ScanFlow":
        self.state = ScanState.READY
        self.raw = None
        self.manual_only = False
        self.message = self.detail = ""
        self.status = 200
        self.details = {}
        return self

    def as_dict(self) -> dict:
        out = {
            "ok": self.state == ScanState.SUCCESS,
            "state": self.state.value,
            "message": self.message,
        }
        if self.detail:
            out["detail"] = self.detail
        if self.details:
            out["details"] = self.details
        if self.state == ScanState.ERROR and self.raw:
            out["raw"] = self.raw
        if self.manual_only:
            out["manual_only"] = True
        return out
