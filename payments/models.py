# payments/models.py
from django.db import models


class SettlementTask(models.Model):
    """
    Deferred completion of a settlement's farmer/transporter transfers.

    Written in the same transaction that marks the order paid, so a restart
    between settling and completing leaves a due row for the worker.
    """

    order = models.ForeignKey("orders.Order", related_name="settlement_tasks", on_delete=models.CASCADE)
    run_after = models.DateTimeField(db_index=True)
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")
    completed_at = models.DateTimeField(null=True, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["run_after", "id"]

    def __str__(self):
        state = "done" if self.completed_at else f"due {self.run_after:%Y-%m-%d %H:%M:%S}"
        return f"Settlement task #{self.id} for order #{self.order_id} ({state})"
