from django.db import models
from django.conf import settings


class AffiliateCode(models.Model):
    """Referral code handed out by an affiliate"""
    affiliate = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='affiliate_code'
    )
    code = models.CharField(max_length=32, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'affiliate_codes'

    def __str__(self):
        return self.code
