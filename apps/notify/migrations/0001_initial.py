from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="NotificationChannel",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "name",
                    models.CharField(
                        help_text="Unique name, e.g. 'sales-email' or 'crm-webhook'.",
                        max_length=100,
                        unique=True,
                    ),
                ),
                (
                    "driver",
                    models.CharField(
                        db_index=True,
                        help_text="Driver name: 'email' or 'webhook'.",
                        max_length=50,
                    ),
                ),
                (
                    "audience",
                    models.CharField(
                        choices=[("customer", "Customer"), ("team", "Team")],
                        default="team",
                        help_text="Customer channels deliver to the record's contact address.",
                        max_length=20,
                    ),
                ),
                (
                    "config",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Driver settings, e.g. smtp_host and from_address, or url.",
                    ),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
    ]
