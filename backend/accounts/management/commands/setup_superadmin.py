"""
Management command: setup_superadmin
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Creates (or updates) the bootstrap ``superadmin`` account so a fresh
deployment has someone who can create admins and officers through the
user-management API.

The command is **idempotent** — safe to run multiple times.  An existing
account with the same username is promoted to ``superadmin`` and
re-activated; its password is only replaced when ``--reset-password`` is
given.

Usage::

    python manage.py setup_superadmin --username root --email root@example.com
    SUPERADMIN_PASSWORD=... python manage.py setup_superadmin
"""

from decouple import config
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from accounts.models import UserRole


class Command(BaseCommand):
    help = "Create or update the bootstrap superadmin account."

    def add_arguments(self, parser):
        parser.add_argument("--username", default=config("SUPERADMIN_USERNAME", default="superadmin"))
        parser.add_argument("--email", default=config("SUPERADMIN_EMAIL", default="superadmin@civic-resolve.local"))
        parser.add_argument("--password", default=config("SUPERADMIN_PASSWORD", default=""))
        parser.add_argument(
            "--reset-password",
            action="store_true",
            help="Replace the password of an existing account.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        User = get_user_model()
        username = options["username"]
        password = options["password"]

        user = User.objects.filter(username=username).first()
        if user is None:
            if not password:
                raise CommandError(
                    "A password is required to create the superadmin "
                    "(use --password or SUPERADMIN_PASSWORD)."
                )
            User.objects.create_user(
                username=username,
                email=options["email"],
                password=password,
                first_name="Super",
                last_name="Admin",
                role=UserRole.SUPERADMIN,
                is_staff=True,
            )
            self.stdout.write(self.style.SUCCESS(f"Created superadmin '{username}'."))
            return

        user.role = UserRole.SUPERADMIN
        user.is_active = True
        user.is_staff = True
        update_fields = ["role", "is_active", "is_staff"]
        if options["reset_password"]:
            if not password:
                raise CommandError("--reset-password needs --password or SUPERADMIN_PASSWORD.")
            user.set_password(password)
            update_fields.append("password")
        user.save(update_fields=update_fields)
        self.stdout.write(self.style.SUCCESS(f"Updated superadmin '{username}'."))
