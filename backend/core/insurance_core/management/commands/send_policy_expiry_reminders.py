from django.core.management.base import BaseCommand

from customers.models import Company
from insurance_core.services.notifications import EmailNotificationSink, RecordingNotificationSink
from insurance_core.services.reminder_service import run_reminder_tick


class Command(BaseCommand):
    help = "Run one policy expiry reminder tick (cron: daily 09:00, weekly Monday 08:00)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--mode",
            choices=("daily", "weekly"),
            default="daily",
            help="daily also expires lapsed policies before the sweep.",
        )
        parser.add_argument(
            "--tenant",
            dest="tenant_code",
            default="",
            help="Optional tenant_code to run a single agency.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Record notifications instead of sending e-mail.",
        )

    def handle(self, *args, **options):
        mode = options["mode"]
        tenant_code = (options.get("tenant_code") or "").strip().lower()

        agencies = Company.objects.filter(is_active=True).order_by("id")
        if tenant_code:
            agencies = agencies.filter(tenant_code=tenant_code)

        if not agencies.exists():
            self.stdout.write(self.style.WARNING("No active agency found for the selected filter."))
            return

        sink = RecordingNotificationSink() if options["dry_run"] else EmailNotificationSink()
        tick = run_reminder_tick(mode=mode, sink=sink, companies=list(agencies))
        sweep = tick.sweep

        style = self.style.SUCCESS if not (tick.failed_agencies or sweep.failed) else self.style.WARNING
        self.stdout.write(
            style(
                f"Completed mode={mode}. agencies={tick.agencies} "
                f"failed_agencies={tick.failed_agencies} expired={tick.expired_policies} "
                f"reminded={sweep.reminded} skipped={sweep.skipped} failed={sweep.failed} "
                f"customer_notifications={sweep.customer_notifications} "
                f"agent_notifications={sweep.agent_notifications} "
                f"notification_failures={sweep.notification_failures}"
            )
        )
