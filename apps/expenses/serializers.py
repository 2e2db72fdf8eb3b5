from decimal import ROUND_HALF_UP

from rest_framework import serializers

from apps.decisions.serializers import VoterRefField
from .models import Expense, SplitMode


# =============================================================================
# Input Serializers
# =============================================================================

class ExpenseFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for ledger reads.

    Query Parameters:
        decision (UUID): Decision whose ledger to read
    """

    decision = serializers.UUIDField()


class ExpenseCreateSerializer(serializers.Serializer):
    """
    Validate input for recording an expense.

    Amounts arrive as decimal strings; more than 2 decimal places is a
    validation error rather than a silent rounding.
    """

    decision = serializers.UUIDField()
    payer_ref = VoterRefField(max_length=80)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    description = serializers.CharField(max_length=200)
    split_mode = serializers.ChoiceField(choices=SplitMode.choices, default=SplitMode.EVEN)
    split_among = serializers.ListField(
        child=serializers.CharField(max_length=80),
        required=False,
        default=list
    )


# =============================================================================
# Output Serializers
# =============================================================================

class ExpenseSerializer(serializers.ModelSerializer):
    paid_by = serializers.SerializerMethodField()
    paid_by_name = serializers.CharField(source='paid_by.display_name', read_only=True)

    class Meta:
        model = Expense
        fields = [
            'id',
            'decision',
            'paid_by',
            'paid_by_name',
            'amount',
            'description',
            'split_mode',
            'split_among',
            'created_at',
        ]
        read_only_fields = fields

    def get_paid_by(self, obj) -> str:
        return str(obj.paid_by.voter_ref)


class ExpenseListResponseSerializer(serializers.Serializer):
    expenses = ExpenseSerializer(many=True)
    total = serializers.DecimalField(max_digits=None, decimal_places=2)


class ExpenseCreatedResponseSerializer(serializers.Serializer):
    expense_id = serializers.UUIDField()
    expense = ExpenseSerializer()


class TransferSerializer(serializers.Serializer):
    """Serializes settlement.Transfer tuples."""
    from_ref = serializers.CharField()
    to_ref = serializers.CharField()
    amount = serializers.DecimalField(max_digits=None, decimal_places=2, rounding=ROUND_HALF_UP)


class SettlementSerializer(serializers.Serializer):
    """Serializes settlement.Settlement; amounts are unbounded sums of ledger rows."""
    balances = serializers.DictField(
        child=serializers.DecimalField(max_digits=None, decimal_places=2, rounding=ROUND_HALF_UP)
    )
    transfers = TransferSerializer(many=True)
    total = serializers.DecimalField(max_digits=None, decimal_places=2)
