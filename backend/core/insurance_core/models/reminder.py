from __future__ import annotations

from django.db import models

from insurance_core.models.policy import Policy
from tenancy.models import BaseTenantModel


class PolicyReminder(BaseTenantModel):
    """Expiry reminder attached to a policy.

    ``expiry_date`` snapshots the policy end date the reminder was produced
    for. At most one automatic reminder exists per policy and expiry date, so
    a renewed policy gets a fresh reminder for its new end date.
    """

    class Kind(models.TextChoices):
        AUTO = "AUTO", "Automatic"
        MANUAL = "MANUAL", "Manual"

    policy = models.ForeignKey(
        Policy,
        related_name="reminders",
        on_delete=models.CASCADE,
    )
    kind = models.CharField(max_length=10, choices=Kind.choices, default=Kind.AUTO)
    reminder_date = models.DateField()
    expiry_date = models.DateField()
    is_sent = models.BooleanField(default=False)
    sent_at = models.DateTimeField(null=True, blank=True)
    claimed_at = models.DateTimeField(null=True, blank=True)
    customer_notified = models.BooleanField(default=False)
    agent_notified = models.BooleanField(default=False)
    last_error = models.TextField(blank=True)

    class Meta:
        ordering = ("reminder_date", "id")
        verbose_name = "Policy Reminder"
        verbose_name_plural = "Policy Reminders"
        constraints = [
            models.UniqueConstraint(
                fields=("policy", "expiry_date"),
                condition=models.Q(kind="AUTO"),
                name="uq_auto_reminder_per_policy_expiry",
            ),
        ]
        indexes = [
            models.Index(
                fields=("company", "is_sent", "reminder_date"),
                name="idx_rem_cmp_sent_date",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        state = "sent" if self.is_sent else "pending"
        return f"{self.policy_id} {self.kind} {self.reminder_date} ({state})"

    def save(self, *args, **kwargs):
        if self.policy_id and self.company_id is None:
            self.company = self.policy.company
        return super().save(*args, **kwargs)
