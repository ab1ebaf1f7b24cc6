"""
Generate a one-off admin username/password pair.

Usage:
    python manage.py generate_admin_credential [--expires-days 90]
"""
import json
from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from treksite.core.credentials import (
    encrypt_credential,
    generate_strong_password,
    generate_username,
    log_credential_access,
)


class Command(BaseCommand):
    help = 'Generate a secure admin credential and print it once'

    def add_arguments(self, parser):
        parser.add_argument(
            '--expires-days',
            type=int,
            default=None,
            help='Days until the credential expires (default: CREDENTIAL_EXPIRY_DAYS)',
        )

    def handle(self, *args, **options):
        expires_days = options['expires_days'] or settings.CREDENTIAL_EXPIRY_DAYS

        self.stdout.write('Generating secure admin credential...')

        username = generate_username()
        password = generate_strong_password()
        creation_time = timezone.now()
        expiration_time = creation_time + timedelta(days=expires_days)

        encrypted = encrypt_credential(
            json.dumps({'username': username, 'password': password}),
            settings.CREDENTIAL_SECRET_KEY,
        )

        # The event is logged, the credential itself is not
        log_credential_access(username, 'credential_generate')

        self.stdout.write("\n" + "=" * 48)
        self.stdout.write(self.style.SUCCESS("       SECURE ADMIN CREDENTIAL GENERATED        "))
        self.stdout.write("=" * 48)
        self.stdout.write(f"Username: {username}")
        self.stdout.write(f"Password: {password}")
        self.stdout.write("-" * 48)
        self.stdout.write(f"Created: {creation_time.isoformat()}")
        self.stdout.write(f"Expires: {expiration_time.isoformat()}")
        self.stdout.write(f"Encrypted Storage Token: {encrypted[:20]}...")
        self.stdout.write("=" * 48 + "\n")
        self.stdout.write(self.style.WARNING('IMPORTANT: Store these credentials securely immediately.'))
        self.stdout.write(self.style.WARNING('The password cannot be retrieved once this session ends.'))
