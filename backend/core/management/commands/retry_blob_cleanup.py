"""
Management command: retry_blob_cleanup
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Drains the ``PendingBlobDeletion`` queue.  Each queued blob is deleted
again through the configured blob store; rows whose delete succeeds are
removed, the rest have their ``attempts`` counter bumped.

Rows that already failed ``--max-attempts`` times are left alone so an
operator can inspect them in the admin.

Usage::

    python manage.py retry_blob_cleanup
    python manage.py retry_blob_cleanup --max-attempts 10 --batch-size 200
"""

from django.core.management.base import BaseCommand
from django.db.models import F

from core.domain.storage import get_blob_store
from core.models import PendingBlobDeletion


class Command(BaseCommand):
    help = "Retry blob deletions that failed after a complaint was deleted."

    def add_arguments(self, parser):
        parser.add_argument("--max-attempts", type=int, default=5)
        parser.add_argument("--batch-size", type=int, default=100)

    def handle(self, *args, **options):
        store = get_blob_store()
        pending = PendingBlobDeletion.objects.filter(
            attempts__lt=options["max_attempts"],
        )[: options["batch_size"]]

        released = failed = 0
        for row in pending:
            if store.delete(row.blob_id):
                row.delete()
                released += 1
            else:
                PendingBlobDeletion.objects.filter(pk=row.pk).update(
                    attempts=F("attempts") + 1,
                    last_error="delete failed",
                )
                failed += 1

        self.stdout.write(
            self.style.SUCCESS(f"Released {released} blob(s); {failed} still pending.")
        )
