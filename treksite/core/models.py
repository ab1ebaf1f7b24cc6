from django.conf import settings
from django.db import models


class AuditLog(models.Model):
    """Audit log for admin operations"""
    ACTION_CHOICES = [
        ('setting_update', 'Setting Updated'),
        ('tour_create', 'Tour Created'),
        ('tour_update', 'Tour Updated'),
        ('tour_publish', 'Tour Published'),
        ('tour_unpublish', 'Tour Unpublished'),
        ('booking_view', 'Booking Viewed'),
        ('credential_generate', 'Credential Generated'),
        ('credential_access', 'Credential Accessed'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., tour name, setting key)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.model_name}:{self.object_id}"

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_3a1f0c_idx'),
            models.Index(fields=['action'], name='audit_logs_action_5d2e9b_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_7c4b21_idx'),
        ]
