# deals/models.py

import uuid

from django.conf import settings
from django.core.validators import MinValueValidator, RegexValidator
from django.db import models
from django.utils import timezone

from .token_utils import make_access_code, make_merchant_pin


# =========================
# Towns / Merchants
# =========================

class Town(models.Model):
    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140, unique=True)

    # 4-digit code printed on invitations; unlocks the area in the consumer app
    access_code = models.CharField(
        max_length=12,
        default=make_access_code,
        editable=False,
    )

    # free towns don't need the paid unlock to redeem
    is_free = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Merchant(models.Model):
    CATEGORY_CHOICES = [
        ("Cafe & Bakery", "Cafe & Bakery"),
        ("Financial", "Financial"),
        ("Fitness", "Fitness"),
        ("Hair & Beauty", "Hair & Beauty"),
        ("Mechanical", "Mechanical"),
        ("Miscellaneous", "Miscellaneous"),
        ("Pet Care", "Pet Care"),
        ("Photography", "Photography"),
        ("Recreation", "Recreation"),
    ]

    name = models.CharField(max_length=160)
    street_address = models.CharField(max_length=255, blank=True, default="")
    category = models.CharField(
        max_length=32,
        choices=CATEGORY_CHOICES,
        default="Miscellaneous",
    )
    town = models.ForeignKey(
        Town,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="merchants",
    )
    logo_url = models.URLField(blank=True, default="")

    # Stable public id for the printed QR poster (immutable)
    merchant_pin = models.CharField(
        max_length=12,
        unique=True,
        default=make_merchant_pin,
        editable=False,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


# =========================
# Profiles
# =========================

class Profile(models.Model):
    ROLE_CONSUMER = "consumer"
    ROLE_MERCHANT = "merchant"
    ROLE_ADMIN = "admin"
    ROLE_CHOICES = [
        (ROLE_CONSUMER, "Consumer"),
        (ROLE_MERCHANT, "Merchant"),
        (ROLE_ADMIN, "Admin"),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_CONSUMER)

    # staff linkage used by the counter scanner
    merchant = models.ForeignKey(
        Merchant,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="staff",
    )

    # towns opened with their access code (free towns never need it)
    unlocked_towns = models.ManyToManyField(Town, blank=True, related_name="unlocked_by")

    paid = models.BooleanField(default=False)
    phone = models.CharField(max_length=20, blank=True, default="")
    display_name = models.CharField(max_length=40, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_admin(self) -> bool:
        return self.role == self.ROLE_ADMIN or self.user.is_staff

    def __str__(self):
        return self.display_name or f"Profile({self.user_id}, {self.role})"


# =========================
# Offers
# =========================

class Offer(models.Model):
    merchant = models.ForeignKey(
        Merchant,
        on_delete=models.CASCADE,
        related_name="offers",
    )
    title = models.CharField(max_length=160)
    terms = models.TextField(blank=True, default="")
    image_url = models.CharField(max_length=500, blank=True, default="")

    savings_cents = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True, db_index=True)
    valid_from = models.DateTimeField(null=True, blank=True)
    valid_to = models.DateTimeField(null=True, blank=True)

    # null = unlimited
    total_limit = models.PositiveIntegerField(null=True, blank=True, validators=[MinValueValidator(1)])
    daily_limit = models.PositiveIntegerField(null=True, blank=True, validators=[MinValueValidator(1)])
    per_user_limit = models.PositiveIntegerField(null=True, blank=True, validators=[MinValueValidator(1)])

    # running counter, only ever bumped by the redemption service
    redeemed_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["is_active", "valid_to"], name="offer_active_valid_idx"),
        ]

    def is_live(self, now=None) -> bool:
        now = now or timezone.now()
        if not self.is_active:
            return False
        if self.valid_from and self.valid_from > now:
            return False
        if self.valid_to and self.valid_to < now:
            return False
        return True

    def days_left(self, now=None):
        if not self.valid_to:
            return None
        now = now or timezone.now()
        return max(0, (self.valid_to - now).days)

    def __str__(self):
        return f"{self.title} @ {self.merchant_id}"


# =========================
# Claims (tokens) + Redemptions
# =========================

manual_code_validator = RegexValidator(
    regex=r"^[A-Z0-9]{5}$",
    message="Manual code is 5 uppercase letters/digits.",
)


class Claim(models.Model):
    """
    Short-lived permission for one user to redeem one offer once.
    QR scan OR manual code, whichever hits first consumes it.
    """

    STATUS_ISSUED = "issued"
    STATUS_REDEEMED = "redeemed"
    STATUS_EXPIRED = "expired"
    STATUS_CHOICES = (
        (STATUS_ISSUED, "Issued"),
        (STATUS_REDEEMED, "Redeemed"),
        (STATUS_EXPIRED, "Expired"),
    )

    VIA_SCAN = "scan"
    VIA_CODE = "code"
    USED_VIA_CHOICES = (
        ("", "Unknown"),
        (VIA_SCAN, "QR Scan"),
        (VIA_CODE, "Manual code"),
    )

    token = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    manual_code = models.CharField(
        max_length=5,
        validators=[manual_code_validator],
        db_index=True,
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="claims",
    )
    offer = models.ForeignKey(Offer, on_delete=models.CASCADE, related_name="claims")
    merchant = models.ForeignKey(Merchant, on_delete=models.CASCADE, related_name="claims")

    status = models.CharField(
        max_length=12,
        choices=STATUS_CHOICES,
        default=STATUS_ISSUED,
        db_index=True,
    )

    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(db_index=True)

    consumed_at = models.DateTimeField(null=True, blank=True)
    used_via = models.CharField(max_length=8, choices=USED_VIA_CHOICES, blank=True, default="")
    redeemed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="scanned_claims",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["merchant", "manual_code", "status"], name="claim_merchant_code_idx"),
            models.Index(fields=["user", "offer", "status"], name="claim_user_offer_idx"),
        ]

    def is_expired(self, now=None) -> bool:
        now = now or timezone.now()
        return self.expires_at <= now

    def __str__(self):
        return f"Claim({self.manual_code}, {self.status}, offer={self.offer_id})"


class Redemption(models.Model):
    # one row per consumed claim; the unique claim link is the last line of defence
    claim = models.OneToOneField(Claim, on_delete=models.PROTECT, related_name="redemption")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="redemptions",
    )
    merchant = models.ForeignKey(Merchant, on_delete=models.CASCADE, related_name="redemptions")
    offer = models.ForeignKey(Offer, on_delete=models.CASCADE, related_name="redemptions")

    via = models.CharField(max_length=8, choices=Claim.USED_VIA_CHOICES, blank=True, default="")
    redeemed_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-redeemed_at"]
        indexes = [
            models.Index(fields=["offer", "redeemed_at"], name="redemption_offer_at_idx"),
            models.Index(fields=["offer", "user"], name="redemption_offer_user_idx"),
            models.Index(fields=["merchant", "redeemed_at"], name="redemption_merchant_at_idx"),
        ]

    def __str__(self):
        return f"Redemption({self.user_id} -> {self.offer_id} @ {self.redeemed_at:%Y-%m-%d %H:%M})"


# =========================
# Back office inputs
# =========================

class MerchantApplication(models.Model):
    STATUS_CHOICES = [
        ("new", "New"),
        ("read", "Read"),
        ("approved", "Approved"),
        ("denied", "Denied"),
    ]

    business_name = models.CharField(max_length=160)
    category = models.CharField(max_length=32, blank=True, default="")
    address = models.CharField(max_length=255, blank=True, default="")
    contact_name = models.CharField(max_length=120, blank=True, default="")
    position = models.CharField(max_length=120, blank=True, default="")
    email = models.EmailField()
    phone = models.CharField(max_length=20, blank=True, default="")
    town_name = models.CharField(max_length=160, blank=True, default="")
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default="new", db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.business_name} ({self.status})"


class WaitlistEntry(models.Model):
    """Someone asking for the service in a town that isn't live yet."""

    email = models.EmailField()
    town_name = models.CharField(max_length=120)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.email} ({self.town_name})"


class SupportRequest(models.Model):
    STATUS_CHOICES = [
        ("open", "Open"),
        ("in_progress", "In progress"),
        ("resolved", "Resolved"),
    ]

    name = models.CharField(max_length=120)
    email = models.EmailField()
    phone = models.CharField(max_length=20, blank=True, default="")
    type = models.CharField(max_length=32, default="support")
    topic = models.CharField(max_length=120, blank=True, default="")
    message = models.TextField()

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default="open", db_index=True)
    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.email}: {self.topic or self.type}"


class VerificationCode(models.Model):
    KIND_CHOICES = [
        ("email", "Email"),
        ("phone", "Phone"),
    ]

    target = models.CharField(max_length=254, db_index=True)
    kind = models.CharField(max_length=8, choices=KIND_CHOICES)
    code_hash = models.CharField(max_length=128)  # HMAC hex, raw code never stored
    expires_at = models.DateTimeField()
    attempts = models.PositiveIntegerField(default=0)
    used = models.BooleanField(default=False)
    used_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=["target", "expires_at"], name="vcode_target_expires_idx")]

    def __str__(self):
        return f"{self.target} (used={self.used})"
