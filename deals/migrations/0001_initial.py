import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import deals.token_utils


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Town",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("slug", models.SlugField(max_length=140, unique=True)),
                ("access_code", models.CharField(default=deals.token_utils.make_access_code, editable=False, max_length=12, unique=True)),
                ("is_free", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Merchant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=160)),
                ("street_address", models.CharField(blank=True, default="", max_length=255)),
                ("category", models.CharField(
                    choices=[
                        ("Cafe & Bakery", "Cafe & Bakery"),
                        ("Financial", "Financial"),
                        ("Fitness", "Fitness"),
                        ("Hair & Beauty", "Hair & Beauty"),
                        ("Mechanical", "Mechanical"),
                        ("Miscellaneous", "Miscellaneous"),
                        ("Pet Care", "Pet Care"),
                        ("Photography", "Photography"),
                        ("Recreation", "Recreation"),
                    ],
                    default="Miscellaneous",
                    max_length=32,
                )),
                ("logo_url", models.URLField(blank=True, default="")),
                ("merchant_pin", models.CharField(db_index=True, default=deals.token_utils.make_merchant_pin, editable=False, max_length=12, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("town", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="merchants", to="deals.town")),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Profile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(choices=[("consumer", "Consumer"), ("merchant", "Merchant"), ("admin", "Admin")], default="consumer", max_length=16)),
                ("paid", models.BooleanField(default=False)),
                ("phone", models.CharField(blank=True, default="", max_length=20)),
                ("display_name", models.CharField(blank=True, default="", max_length=40)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("merchant", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="staff", to="deals.merchant")),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="profile", to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name="Offer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=160)),
                ("terms", models.TextField(blank=True, default="")),
                ("image_url", models.CharField(blank=True, default="", max_length=500)),
                ("savings_cents", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("valid_from", models.DateTimeField(blank=True, null=True)),
                ("valid_to", models.DateTimeField(blank=True, null=True)),
                ("total_limit", models.PositiveIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1)])),
                ("daily_limit", models.PositiveIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1)])),
                ("per_user_limit", models.PositiveIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1)])),
                ("redeemed_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("merchant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="offers", to="deals.merchant")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["is_active", "valid_to"], name="offer_active_valid_idx")],
            },
        ),
        migrations.CreateModel(
            name="Claim",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("token", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("manual_code", models.CharField(
                    db_index=True,
                    max_length=5,
                    validators=[django.core.validators.RegexValidator(message="Manual code is 5 uppercase letters/digits.", regex="^[A-Z0-9]{5}$")],
                )),
                ("status", models.CharField(choices=[("issued", "Issued"), ("redeemed", "Redeemed"), ("expired", "Expired")], db_index=True, default="issued", max_length=12)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("expires_at", models.DateTimeField(db_index=True)),
                ("consumed_at", models.DateTimeField(blank=True, null=True)),
                ("used_via", models.CharField(blank=True, choices=[("", "Unknown"), ("scan", "QR Scan"), ("code", "Manual code")], default="", max_length=8)),
                ("merchant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="claims", to="deals.merchant")),
                ("offer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="claims", to="deals.offer")),
                ("redeemed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="scanned_claims", to=settings.AUTH_USER_MODEL)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="claims", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["merchant", "manual_code", "status"], name="claim_merchant_code_idx"),
                    models.Index(fields=["user", "offer", "status"], name="claim_user_offer_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Redemption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("via", models.CharField(blank=True, choices=[("", "Unknown"), ("scan", "QR Scan"), ("code", "Manual code")], default="", max_length=8)),
                ("redeemed_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("claim", models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name="redemption", to="deals.claim")),
                ("merchant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="redemptions", to="deals.merchant")),
                ("offer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="redemptions", to="deals.offer")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="redemptions", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-redeemed_at"],
                "indexes": [
                    models.Index(fields=["offer", "redeemed_at"], name="redemption_offer_at_idx"),
                    models.Index(fields=["offer", "user"], name="redemption_offer_user_idx"),
                    models.Index(fields=["merchant", "redeemed_at"], name="redemption_merchant_at_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MerchantApplication",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_name", models.CharField(max_length=160)),
                ("category", models.CharField(blank=True, default="", max_length=32)),
                ("address", models.CharField(blank=True, default="", max_length=255)),
                ("contact_name", models.CharField(blank=True, default="", max_length=120)),
                ("position", models.CharField(blank=True, default="", max_length=120)),
                ("email", models.EmailField(max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=20)),
                ("status", models.CharField(choices=[("new", "New"), ("read", "Read"), ("approved", "Approved"), ("denied", "Denied")], db_index=True, default="new", max_length=12)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="SupportRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("email", models.EmailField(max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=20)),
                ("type", models.CharField(default="support", max_length=32)),
                ("topic", models.CharField(blank=True, default="", max_length=120)),
                ("message", models.TextField()),
                ("status", models.CharField(choices=[("open", "Open"), ("in_progress", "In progress"), ("resolved", "Resolved")], db_index=True, default="open", max_length=16)),
                ("is_read", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="VerificationCode",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("target", models.CharField(db_index=True, max_length=254)),
                ("kind", models.CharField(choices=[("email", "Email"), ("phone", "Phone")], max_length=8)),
                ("code_hash", models.CharField(max_length=128)),
                ("expires_at", models.DateTimeField()),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("used", models.BooleanField(default=False)),
                ("used_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "indexes": [models.Index(fields=["target", "expires_at"], name="vcode_target_expires_idx")],
            },
        ),
    ]
