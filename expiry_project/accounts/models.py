from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Display name used in notification emails"
    )

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.username

    def __str__(self):
        return f"{self.display_name} ({self.username})" if self.name else self.username
