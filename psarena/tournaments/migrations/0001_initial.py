import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("wallet", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Tournament",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=100, validators=[django.core.validators.MinLengthValidator(3)])),
                ("game", models.CharField(max_length=50, validators=[django.core.validators.MinLengthValidator(2)])),
                ("description", models.TextField(blank=True, default="", max_length=2000)),
                ("rules", models.TextField(blank=True, default="", max_length=5000)),
                ("image_url", models.URLField(blank=True, max_length=500, null=True)),
                ("entry_fee", models.PositiveIntegerField(default=0)),
                ("prize_pool", models.PositiveIntegerField(default=0)),
                ("currency", models.CharField(
                    choices=[("TOMAN", "تومان"), ("USDT", "تتر")], default="TOMAN", max_length=8,
                )),
                ("prize_distribution", models.JSONField(blank=True, default=list)),
                ("max_players", models.PositiveIntegerField(validators=[
                    django.core.validators.MinValueValidator(2), django.core.validators.MaxValueValidator(1024),
                ])),
                ("start_at", models.DateTimeField()),
                ("status", models.CharField(
                    choices=[("DRAFT", "پیش‌نویس"), ("PUBLISHED", "منتشر شده"), ("COMPLETED", "پایان یافته"),
                             ("CANCELED", "لغو شده")],
                    db_index=True, default="DRAFT", max_length=10,
                )),
                ("finalized_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="created_tournaments",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "verbose_name": "مسابقه",
                "verbose_name_plural": "مسابقات",
                "ordering": ["start_at"],
            },
        ),
        migrations.CreateModel(
            name="Participant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(
                    choices=[("PENDING", "در انتظار"), ("APPROVED", "تایید شده"), ("REJECTED", "رد شده")],
                    default="PENDING", max_length=10,
                )),
                ("joined_at", models.DateTimeField(auto_now_add=True)),
                ("entry_transaction", models.OneToOneField(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="participant",
                    to="wallet.transaction",
                )),
                ("tournament", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="participants",
                    to="tournaments.tournament",
                )),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="participations",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "verbose_name": "شرکت‌کننده",
                "verbose_name_plural": "شرکت‌کنندگان",
                "ordering": ["joined_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("tournament", "user"), name="uniq_participant_per_tournament"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Match",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("round", models.PositiveIntegerField(default=1)),
                ("score1", models.IntegerField(blank=True, null=True)),
                ("score2", models.IntegerField(blank=True, null=True)),
                ("status", models.CharField(
                    choices=[("SCHEDULED", "زمان‌بندی شده"), ("IN_PROGRESS", "در حال انجام"),
                             ("COMPLETED", "پایان یافته"), ("CANCELED", "لغو شده")],
                    default="SCHEDULED", max_length=12,
                )),
                ("psn_match_id", models.CharField(blank=True, max_length=128, null=True)),
                ("scheduled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("player1", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="matches_as_player1",
                    to="tournaments.participant",
                )),
                ("player2", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="matches_as_player2",
                    to="tournaments.participant",
                )),
                ("tournament", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="matches", to="tournaments.tournament",
                )),
                ("winner", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="won_matches",
                    to="tournaments.participant",
                )),
            ],
            options={
                "verbose_name": "بازی",
                "verbose_name_plural": "بازی‌ها",
                "ordering": ["round", "created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("player1", models.F("player2")), _negated=True),
                        name="match_distinct_players",
                    ),
                ],
            },
        ),
    ]
