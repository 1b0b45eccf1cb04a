from django.db import models
from django.conf import settings


class SupportThread(models.Model):
    """One help-desk conversation per client or driver"""
    STATUS_CHOICES = [
        ('open', 'Open'),
        ('closed', 'Closed'),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='support_thread'
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='open')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'support_threads'
        ordering = ['-updated_at']

    def __str__(self):
        return f"Support thread {self.id} ({self.user_id}, {self.status})"


class SupportMessage(models.Model):
    MAX_LENGTH = 4000

    thread = models.ForeignKey(SupportThread, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='support_messages'
    )
    sender_role = models.CharField(max_length=20)
    message = models.TextField(max_length=MAX_LENGTH)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'support_messages'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.sender_role} in thread {self.thread_id}"
