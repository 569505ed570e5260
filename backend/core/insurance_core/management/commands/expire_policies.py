from django.core.management.base import BaseCommand, CommandError

from customers.models import Company
from insurance_core.services.policy_service import expire_due_policies


class Command(BaseCommand):
    help = "Move ACTIVE policies whose end date has passed to EXPIRED."

    def add_arguments(self, parser):
        parser.add_argument(
            "--tenant",
            dest="tenant_code",
            default="",
            help="Optional tenant_code to run a single agency.",
        )

    def handle(self, *args, **options):
        tenant_code = (options.get("tenant_code") or "").strip().lower()
        company = None
        if tenant_code:
            company = Company.objects.filter(tenant_code=tenant_code).first()
            if company is None:
                raise CommandError(f"Unknown agency '{tenant_code}'.")

        expired = expire_due_policies(company=company)
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} policies."))
