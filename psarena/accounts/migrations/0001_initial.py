import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="OtpCode",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("phone", models.CharField(db_index=True, max_length=11)),
                ("code", models.CharField(max_length=6)),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("verified", models.BooleanField(default=False)),
                ("expires_at", models.DateTimeField()),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                "verbose_name": "کد تایید",
                "verbose_name_plural": "کدهای تایید",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=60)),
                ("psn_id", models.CharField(
                    max_length=16, unique=True, verbose_name="PSN ID",
                    validators=[django.core.validators.RegexValidator(
                        "^[A-Za-z][A-Za-z0-9_-]{2,15}$",
                        "PSN ID must start with a letter and be 3-16 chars; only letters, numbers, - and _ allowed",
                    )],
                )),
                ("phone", models.CharField(blank=True, db_index=True, max_length=11, null=True)),
                ("phone_verified", models.BooleanField(default=False)),
                ("psn_refresh_token", models.TextField(blank=True, default="")),
                ("is_psn_verified", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("user", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE, related_name="profile", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "verbose_name": "کاربر",
                "verbose_name_plural": "کاربران",
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("phone_verified", True)), fields=("phone",), name="uniq_verified_phone",
                    ),
                ],
            },
        ),
    ]
