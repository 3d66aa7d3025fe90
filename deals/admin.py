# deals/admin.py
from django.contrib import admin
from django.http import HttpResponse
import csv

from .models import (
    Claim,
    Merchant,
    MerchantApplication,
    Offer,
    Profile,
    Redemption,
    SupportRequest,
    Town,
    VerificationCode,
    WaitlistEntry,
)


# =========================
# Towns / Merchants
# =========================

@admin.register(Town)
class TownAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "access_code", "is_free", "merchant_count", "created_at")
    list_display_links = ("id", "name")
    search_fields = ("name", "slug", "access_code")
    list_filter = ("is_free",)
    readonly_fields = ("access_code", "created_at")
    prepopulated_fields = {"slug": ("name",)}

    def merchant_count(self, obj):
        return obj.merchants.count()
    merchant_count.short_description = "Merchants"


@admin.register(Merchant)
class MerchantAdmin(admin.ModelAdmin):
    list_display = ("id", "merchant_pin", "name", "category", "town", "created_at")
    list_display_links = ("id", "name")
    search_fields = ("name", "merchant_pin", "street_address")
    list_filter = ("category", "town")
    readonly_fields = ("merchant_pin", "created_at")
    list_per_page = 50
    ordering = ("name",)

    fieldsets = (
        ("Identity", {
            "fields": ("merchant_pin", "name", "category", "logo_url"),
            "description": "Merchant PIN is auto-generated and immutable.",
        }),
        ("Location", {
            "fields": ("street_address", "town"),
        }),
        ("Meta", {
            "fields": ("created_at",),
        }),
    )


# =========================
# Profiles
# =========================

@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "user_display", "role", "merchant", "paid", "phone", "created_at")
    list_filter = ("role", "paid")
    search_fields = ("user__username", "user__email", "display_name", "phone")
    autocomplete_fields = ("merchant",)
    filter_horizontal = ("unlocked_towns",)
    ordering = ("-id",)
    list_per_page = 50

    def user_display(self, obj):
        u = obj.user
        return (u.get_full_name() or u.email or u.username or str(u)).strip()
    user_display.short_description = "User"


# =========================
# Offers
# =========================

@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    list_display = (
        "id", "title", "merchant", "is_active", "redeemed_count",
        "total_limit", "daily_limit", "per_user_limit", "valid_to",
    )
    list_display_links = ("id", "title")
    list_filter = ("is_active", "merchant__town")
    search_fields = ("title", "merchant__name")
    readonly_fields = ("redeemed_count", "created_at", "updated_at")
    autocomplete_fields = ("merchant",)
    ordering = ("-created_at",)
    list_per_page = 50
    actions = ["deactivate"]

    def deactivate(self, request, queryset):
        n = queryset.update(is_active=False)
        self.message_user(request, f"{n} offer(s) deactivated.")
    deactivate.short_description = "Deactivate selected offers"


# =========================
# Claims + Redemptions (read-only audit)
# =========================

@admin.register(Claim)
class ClaimAdmin(admin.ModelAdmin):
    list_display = ("id", "manual_code", "status", "user", "offer", "merchant", "created_at", "expires_at", "used_via")
    list_filter = ("status", "used_via")
    search_fields = ("manual_code", "token", "user__email", "offer__title")
    readonly_fields = [f.name for f in Claim._meta.fields]
    date_hierarchy = "created_at"
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False


@admin.register(Redemption)
class RedemptionAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "merchant", "offer", "via", "redeemed_at")
    list_filter = ("via", "merchant")
    search_fields = ("user__email", "merchant__name", "offer__title")
    readonly_fields = [f.name for f in Redemption._meta.fields]
    date_hierarchy = "redeemed_at"
    ordering = ("-redeemed_at",)
    list_per_page = 50

    actions = ["export_as_csv"]

    def has_add_permission(self, request):
        return False

    def export_as_csv(self, request, queryset):
        resp = HttpResponse(content_type="text/csv")
        resp["Content-Disposition"] = 'attachment; filename="redemptions.csv"'
        writer = csv.writer(resp)
        writer.writerow(["id", "user_id", "email", "merchant", "offer", "savings_cents", "via", "redeemed_at"])
        for r in queryset.select_related("user", "merchant", "offer"):
            writer.writerow([
                r.id,
                r.user_id,
                getattr(r.user, "email", ""),
                r.merchant.name,
                r.offer.title,
                r.offer.savings_cents,
                r.via,
                r.redeemed_at.isoformat(),
            ])
        return resp
    export_as_csv.short_description = "Export selected to CSV"


# =========================
# Applications / Support / Codes
# =========================

@admin.register(MerchantApplication)
class MerchantApplicationAdmin(admin.ModelAdmin):
    list_display = ("id", "business_name", "contact_name", "email", "phone", "town_name", "status", "created_at")
    list_filter = ("status", "category")
    search_fields = ("business_name", "email", "contact_name", "town_name")
    ordering = ("-created_at",)


@admin.register(WaitlistEntry)
class WaitlistEntryAdmin(admin.ModelAdmin):
    list_display = ("id", "email", "town_name", "created_at")
    search_fields = ("email", "town_name")
    ordering = ("-created_at",)


@admin.register(SupportRequest)
class SupportRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "email", "type", "topic", "status", "is_read", "created_at")
    list_filter = ("status", "is_read", "type")
    search_fields = ("name", "email", "topic", "message")
    ordering = ("-created_at",)
    actions = ["mark_read", "mark_resolved"]

    def mark_read(self, request, queryset):
        queryset.update(is_read=True)
    mark_read.short_description = "Mark as read"

    def mark_resolved(self, request, queryset):
        queryset.update(status="resolved", is_read=True)
    mark_resolved.short_description = "Mark as resolved"


@admin.register(VerificationCode)
class VerificationCodeAdmin(admin.ModelAdmin):
    list_display = ("id", "target", "kind", "used", "attempts", "expires_at", "created_at")
    list_filter = ("kind", "used")
    search_fields = ("target",)
    readonly_fields = ("target", "kind", "code_hash", "expires_at", "attempts", "used", "used_at", "created_at")
