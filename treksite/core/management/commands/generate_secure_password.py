from django.core.management.base import BaseCommand, CommandError

from treksite.core.credentials import DEFAULT_PASSWORD_LENGTH, generate_strong_password


class Command(BaseCommand):
    help = 'Generate a strong random password for an existing account'

    def add_arguments(self, parser):
        parser.add_argument(
            '--length',
            type=int,
            default=DEFAULT_PASSWORD_LENGTH,
            help=f'Password length (default: {DEFAULT_PASSWORD_LENGTH}, minimum 12)',
        )
        parser.add_argument(
            '--account',
            default='',
            help='Account the password is meant for (display only)',
        )

    def handle(self, *args, **options):
        try:
            password = generate_strong_password(options['length'])
        except ValueError as e:
            raise CommandError(str(e))

        self.stdout.write("\n" + "=" * 48)
        self.stdout.write(self.style.SUCCESS("       SECURE PASSWORD GENERATED        "))
        self.stdout.write("=" * 48)
        if options['account']:
            self.stdout.write(f"Account:  {options['account']}")
            self.stdout.write("-" * 48)
        self.stdout.write(f"PASSWORD: {password}")
        self.stdout.write("-" * 48)
        self.stdout.write('Copy this password immediately and store it securely.')
        self.stdout.write("=" * 48 + "\n")
