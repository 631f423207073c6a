"""
Operate the post-commit outbox: register the sweep, run it now, or retry failed tasks.
"""

from django.core.management.base import BaseCommand, CommandError

from apps.orders.models import PostCommitTask
from apps.orders.tasks import dispatch_due_post_commit_tasks, retry_failed_post_commit_task, setup_outbox_schedule


class Command(BaseCommand):
    help = "📬 Manage post-commit outbox tasks"

    def add_arguments(self, parser):
        parser.add_argument("--setup-schedule", action="store_true", help="Register the periodic outbox sweep")
        parser.add_argument("--sweep", action="store_true", help="Dispatch due tasks now")
        parser.add_argument("--retry", metavar="TASK_ID", nargs="+", help="Reset failed tasks for another run")
        parser.add_argument("--status", action="store_true", help="Show task counts by status")

    def handle(self, *args, **options):
        if not any(options[name] for name in ("setup_schedule", "sweep", "retry", "status")):
            raise CommandError("Choose one of --setup-schedule, --sweep, --retry or --status")

        if options["setup_schedule"]:
            result = setup_outbox_schedule()
            self.stdout.write(self.style.SUCCESS(f"Outbox sweep: {result['outbox_sweep']}"))

        if options["sweep"]:
            result = dispatch_due_post_commit_tasks()
            self.stdout.write(f"Dispatched {result['dispatched']} task(s)")

        for task_id in options["retry"] or ():
            if retry_failed_post_commit_task(task_id):
                self.stdout.write(self.style.SUCCESS(f"✅ {task_id} queued for retry"))
            else:
                self.stdout.write(self.style.WARNING(f"⚠️ {task_id} is not a failed task"))

        if options["status"]:
            for status, _label in PostCommitTask.STATUS_CHOICES:
                count = PostCommitTask.objects.filter(status=status).count()
                self.stdout.write(f"{status:<10} {count}")
