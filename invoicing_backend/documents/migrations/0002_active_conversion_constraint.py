from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("documents", "0001_initial"),
    ]

    operations = [
        migrations.RemoveConstraint(
            model_name="document",
            name="uniq_conversion_per_origin_and_kind",
        ),
        migrations.AddConstraint(
            model_name="document",
            constraint=models.UniqueConstraint(
                condition=models.Q(("origin__isnull", False), models.Q(("status", "cancelled"), _negated=True)),
                fields=("origin", "kind"),
                name="uniq_active_conversion_per_origin_and_kind",
            ),
        ),
    ]
