from rest_framework import mixins, viewsets, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .models import Expense
from .serializers import (
    ExpenseSerializer,
    ExpenseCreateSerializer,
    ExpenseFilterSerializer,
    ExpenseListResponseSerializer,
    ExpenseCreatedResponseSerializer,
    SettlementSerializer,
)
from apps.expenses.services import (
    record_expense,
    delete_expense,
    list_expenses,
    compute_settlement,
    DecisionNotFoundError,
    ExpenseNotFoundError,
    InvalidExpenseError,
)
from apps.decisions.services import NotAParticipantError


DECISION_PARAM = OpenApiParameter(
    name='decision',
    type=str,
    location=OpenApiParameter.QUERY,
    required=True,
    description='Decision UUID',
)


class ExpenseViewSet(
    mixins.ListModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet
):
    """
    ViewSet for a decision's shared-expense ledger.

    list: Expenses of one decision, newest first, with total
    create: Record an expense
    destroy: Remove an expense
    """

    queryset = Expense.objects.select_related('paid_by')
    serializer_class = ExpenseSerializer
    permission_classes = [AllowAny]
    lookup_value_regex = '[0-9a-f-]{36}'

    @extend_schema(parameters=[DECISION_PARAM], responses={200: ExpenseListResponseSerializer})
    def list(self, request, *args, **kwargs):
        filter_serializer = ExpenseFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)

        try:
            expenses, total = list_expenses(decision_id=filter_serializer.validated_data['decision'])
        except DecisionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        return Response(ExpenseListResponseSerializer({
            'expenses': expenses,
            'total': total,
        }).data)

    @extend_schema(request=ExpenseCreateSerializer, responses={201: ExpenseCreatedResponseSerializer})
    def create(self, request, *args, **kwargs):
        """
        Record an expense.

        POST /api/expenses/
        Body: {"decision": "...", "payer_ref": "user:...", "amount": "30.00",
               "description": "Pizza", "split_mode": "EVEN"}
        """
        serializer = ExpenseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            expense = record_expense(
                decision_id=data['decision'],
                payer_ref=data['payer_ref'],
                amount=data['amount'],
                description=data['description'],
                split_mode=data['split_mode'],
                split_among=data['split_among'],
            )
        except DecisionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except (InvalidExpenseError, NotAParticipantError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            ExpenseCreatedResponseSerializer({'expense_id': expense.id, 'expense': expense}).data,
            status=status.HTTP_201_CREATED
        )

    def destroy(self, request, *args, **kwargs):
        try:
            delete_expense(expense_id=kwargs['pk'])
        except ExpenseNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(
    parameters=[DECISION_PARAM],
    responses={200: SettlementSerializer},
    description="Balances and the greedy list of transfers that settle a decision's ledger.",
    tags=['expenses'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
def settlement(request):
    """Compute the settlement for a decision on demand."""
    filter_serializer = ExpenseFilterSerializer(data=request.query_params)
    filter_serializer.is_valid(raise_exception=True)

    try:
        result = compute_settlement(decision_id=filter_serializer.validated_data['decision'])
    except DecisionNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    return Response(SettlementSerializer(result._asdict()).data)
