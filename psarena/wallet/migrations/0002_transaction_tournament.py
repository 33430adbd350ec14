import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("tournaments", "0001_initial"),
        ("wallet", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="transaction",
            name="tournament",
            field=models.ForeignKey(
                blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="transactions",
                to="tournaments.tournament",
            ),
        ),
        # هر رتبه در هر مسابقه فقط یک پرداخت جایزه
        migrations.AddConstraint(
            model_name="transaction",
            constraint=models.UniqueConstraint(
                condition=models.Q(("type", "PRIZE_PAYOUT")),
                fields=("tournament", "prize_position"),
                name="uniq_prize_per_position",
            ),
        ),
    ]
