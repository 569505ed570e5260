from django.core.management.base import BaseCommand

from customers.models import Company
from insurance_core.services.notifications import EmailNotificationSink
from insurance_core.services.reminder_schedule import ReminderScheduler, configured_schedules
from insurance_core.services.reminder_service import run_reminder_tick


class Command(BaseCommand):
    help = "Long-running loop firing the daily and weekly expiry reminder ticks."

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run the daily tick immediately and exit.",
        )

    def handle(self, *args, **options):
        sink = EmailNotificationSink()

        def run_tick(mode):
            tick = run_reminder_tick(
                mode=mode,
                sink=sink,
                companies=list(Company.objects.filter(is_active=True).order_by("id")),
            )
            self.stdout.write(
                f"[{mode}] agencies={tick.agencies} expired={tick.expired_policies} "
                f"reminded={tick.sweep.reminded} failed={tick.sweep.failed}"
            )

        if options["once"]:
            run_tick("daily")
            return

        scheduler = ReminderScheduler(schedules=configured_schedules(), run_tick=run_tick)
        for mode, due_at in scheduler.next_runs.items():
            self.stdout.write(f"Next {mode} tick at {due_at.isoformat()}")

        try:
            scheduler.run_forever()
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING("Reminder scheduler stopped."))
