from django.db import migrations, models

import deals.token_utils


class Migration(migrations.Migration):

    dependencies = [
        ("deals", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="town",
            name="access_code",
            field=models.CharField(default=deals.token_utils.make_access_code, editable=False, max_length=12),
        ),
        migrations.AddField(
            model_name="profile",
            name="unlocked_towns",
            field=models.ManyToManyField(blank=True, related_name="unlocked_by", to="deals.town"),
        ),
        migrations.AddField(
            model_name="merchantapplication",
            name="town_name",
            field=models.CharField(blank=True, default="", max_length=160),
        ),
        migrations.CreateModel(
            name="WaitlistEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("email", models.EmailField(max_length=254)),
                ("town_name", models.CharField(max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
