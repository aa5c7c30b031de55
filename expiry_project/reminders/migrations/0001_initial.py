import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import reminders.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Reminder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("item_type", models.CharField(help_text="What is expiring (shown in notification emails)", max_length=200)),
                ("image", models.CharField(blank=True, default="", max_length=255)),
                ("attachment", models.CharField(blank=True, default="", max_length=255)),
                ("expiry_date", models.DateField(db_index=True)),
                ("notify_before_days", models.JSONField(default=reminders.models.default_notify_before_days, help_text="Days before expiry to send a notification, e.g. [1, 3, 7]")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reminders", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["expiry_date", "id"],
            },
        ),
        migrations.CreateModel(
            name="SentNotification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("days_before", models.PositiveIntegerField()),
                ("sent_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("reminder", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications_sent", to="reminders.reminder")),
            ],
            options={
                "ordering": ["sent_at", "id"],
                "indexes": [models.Index(fields=["reminder", "days_before"], name="reminders_sent_lookup_idx")],
            },
        ),
    ]
