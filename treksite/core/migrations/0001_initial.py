from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('setting_update', 'Setting Updated'), ('tour_create', 'Tour Created'), ('tour_update', 'Tour Updated'), ('tour_publish', 'Tour Published'), ('tour_unpublish', 'Tour Unpublished'), ('booking_view', 'Booking Viewed'), ('credential_generate', 'Credential Generated'), ('credential_access', 'Credential Accessed')], max_length=50)),
                ('model_name', models.CharField(max_length=100)),
                ('object_id', models.CharField(max_length=100)),
                ('object_name', models.CharField(blank=True, help_text='Human-readable name of the object (e.g., tour name, setting key)', max_length=255, null=True)),
                ('changes', models.JSONField(blank=True, default=dict)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audit_logs',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['-created_at'], name='audit_logs_created_3a1f0c_idx'), models.Index(fields=['action'], name='audit_logs_action_5d2e9b_idx'), models.Index(fields=['model_name'], name='audit_logs_model_n_7c4b21_idx')],
            },
        ),
    ]
