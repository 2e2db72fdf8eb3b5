from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class SplitMode(models.TextChoices):
    EVEN = 'EVEN', 'Split evenly'
    CUSTOM = 'CUSTOM', 'Custom split'


class Expense(models.Model):
    """Shared expense paid by one participant for a decision."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    decision = models.ForeignKey(
        'decisions.Decision',
        on_delete=models.CASCADE,
        related_name='expenses'
    )

    # Payer
    paid_by = models.ForeignKey(
        'decisions.Participant',
        on_delete=models.CASCADE,
        related_name='expenses_paid'
    )

    # Financial details
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    description = models.CharField(max_length=200)

    # Split definition; split_among holds voter refs and is empty for EVEN
    split_mode = models.CharField(
        max_length=10,
        choices=SplitMode.choices,
        default=SplitMode.EVEN
    )
    split_among = models.JSONField(default=list, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'expenses'
        indexes = [
            models.Index(fields=['decision', 'created_at'], name='expense_decision_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.description} - {self.amount} ({self.get_split_mode_display()})"
