"""
Django management command to create a portal administrator account
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = 'Creates a staff account that can sign in through /auth/admin-login'

    def add_arguments(self, parser):
        parser.add_argument('username')
        parser.add_argument('password')
        parser.add_argument('--email', default='')
        parser.add_argument(
            '--role',
            default='admin',
            choices=['admin', 'registrar', 'accounts_officer'],
        )

    def handle(self, *args, **options):
        User = get_user_model()
        username = options['username']

        if User.objects.filter(username=username).exists():
            raise CommandError(f"Admin user '{username}' already exists")

        User.objects.create_user(
            username=username,
            password=options['password'],
            email=options['email'],
            role=options['role'],
            is_staff=True,
        )
        self.stdout.write(self.style.SUCCESS(f"[+] Created admin user '{username}' ({options['role']})"))
