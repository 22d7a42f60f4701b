from django.db import models
from django.utils import timezone


class AdminOTPCode(models.Model):
    """One-time code mailed to a platform administrator"""

    email = models.EmailField(db_index=True)
    code = models.CharField(max_length=6)
    expires_at = models.DateTimeField()
    used = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = 'Admin OTP Code'
        verbose_name_plural = 'Admin OTP Codes'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.email} ({'used' if self.used else 'pending'})"

    def is_expired(self):
        return self.expires_at <= timezone.now()


class AdminSession(models.Model):
    """Back-office session opened by a verified OTP, sent as X-Admin-Token"""

    email = models.EmailField(db_index=True)
    token = models.CharField(max_length=64, unique=True)
    expires_at = models.DateTimeField()
    revoked = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = 'Admin Session'
        verbose_name_plural = 'Admin Sessions'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.email} until {self.expires_at:%Y-%m-%d %H:%M}"

    def is_valid(self):
        return not self.revoked and self.expires_at > timezone.now()
