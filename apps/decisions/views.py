from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from .models import Decision
from .serializers import (
    DecisionSerializer,
    DecisionDetailSerializer,
    DecisionCreateSerializer,
    DecisionMessageSerializer,
    ParticipantSerializer,
    ParticipantCreateSerializer,
    MandatoryInputSerializer,
    RSVPInputSerializer,
    OptionSerializer,
    OptionCreateSerializer,
    TimeOptionSerializer,
    TimeOptionCreateSerializer,
    VoteInputSerializer,
    VoteResultSerializer,
    TimeVoteInputSerializer,
    TimeVoteResultSerializer,
    TransitionInputSerializer,
)

from apps.decisions.services import (
    create_decision,
    add_participant,
    set_mandatory,
    update_rsvp,
    add_option,
    add_time_option,
    cast_vote,
    cast_time_vote,
    close_voting,
    transition_decision,
    get_messages,
    # Exceptions
    DecisionNotFoundError,
    OptionNotFoundError,
    ParticipantNotFoundError,
    NotAParticipantError,
    AlreadyParticipantError,
    DecisionNotVotingError,
    InvalidVoteError,
    InvalidStateTransitionError,
    NoOptionsError,
)


class DecisionPagination(PageNumberPagination):
    """Custom pagination for decisions."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class DecisionViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet
):
    """
    ViewSet for decisions and their ballots.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Get all decisions
    create: Create a new decision
    retrieve: Full polling view with tallies
    """

    queryset = Decision.objects.select_related('final_option')
    serializer_class = DecisionSerializer
    permission_classes = [AllowAny]
    pagination_class = DecisionPagination
    lookup_value_regex = '[0-9a-f-]{36}'

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action == 'retrieve':
            return DecisionDetailSerializer
        elif self.action == 'create':
            return DecisionCreateSerializer
        return DecisionSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action == 'retrieve':
            queryset = queryset.prefetch_related('participants')
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    @extend_schema(request=DecisionCreateSerializer, responses={201: DecisionSerializer})
    def create(self, request, *args, **kwargs):
        """Create a new decision."""
        serializer = DecisionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        decision = create_decision(**serializer.validated_data)

        return Response(DecisionSerializer(decision).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=ParticipantCreateSerializer, responses={201: ParticipantSerializer})
    @action(detail=True, methods=['post'])
    def participants(self, request, pk=None):
        """Attach a user or guest to the decision."""
        serializer = ParticipantCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            participant = add_participant(decision_id=pk, **serializer.validated_data)
        except DecisionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except (AlreadyParticipantError, NotAParticipantError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(ParticipantSerializer(participant).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=MandatoryInputSerializer, responses={200: ParticipantSerializer})
    @action(
        detail=True,
        methods=['post'],
        url_path=r'participants/(?P<participant_id>[0-9a-f-]{36})/mandatory'
    )
    def mandatory(self, request, pk=None, participant_id=None):
        """Mark a participant's approval as required (or not)."""
        serializer = MandatoryInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            participant = set_mandatory(
                decision_id=pk,
                participant_id=participant_id,
                is_mandatory=serializer.validated_data['is_mandatory']
            )
        except (DecisionNotFoundError, ParticipantNotFoundError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        return Response(ParticipantSerializer(participant).data)

    @extend_schema(request=RSVPInputSerializer, responses={200: ParticipantSerializer})
    @action(detail=True, methods=['post'])
    def rsvp(self, request, pk=None):
        """Record a participant's RSVP."""
        serializer = RSVPInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            participant = update_rsvp(decision_id=pk, **serializer.validated_data)
        except DecisionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotAParticipantError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(ParticipantSerializer(participant).data)

    @extend_schema(request=OptionCreateSerializer, responses={201: OptionSerializer})
    # Named apart from APIView.options, which answers HTTP OPTIONS
    @action(detail=True, methods=['post'], url_path='options', url_name='options')
    def candidate_options(self, request, pk=None):
        """Add a candidate option."""
        serializer = OptionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            option = add_option(decision_id=pk, label=serializer.validated_data['label'])
        except DecisionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except DecisionNotVotingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(OptionSerializer(option).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=TimeOptionCreateSerializer, responses={201: TimeOptionSerializer})
    @action(detail=True, methods=['post'])
    def time_options(self, request, pk=None):
        """Add a candidate time slot."""
        serializer = TimeOptionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            slot = add_time_option(decision_id=pk, **serializer.validated_data)
        except DecisionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except DecisionNotVotingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(TimeOptionSerializer(slot).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=VoteInputSerializer, responses={200: VoteResultSerializer})
    @action(detail=True, methods=['post'])
    def vote(self, request, pk=None):
        """
        Cast or overwrite a vote and evaluate consensus.

        POST /api/decisions/{id}/vote/
        Body: {"option_id": "...", "voter_ref": "user:...", "value": 1}
        """
        serializer = VoteInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            outcome = cast_vote(decision_id=pk, **serializer.validated_data)
        except (DecisionNotFoundError, OptionNotFoundError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except (NotAParticipantError, DecisionNotVotingError, InvalidVoteError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        result = VoteResultSerializer({
            'accepted': True,
            'evaluated': outcome.evaluated,
            'decision_status': outcome.decision.status,
            'final_option_id': outcome.decision.final_option_id,
        })
        return Response(result.data)

    @extend_schema(request=TimeVoteInputSerializer, responses={200: TimeVoteResultSerializer})
    @action(detail=True, methods=['post'])
    def time_vote(self, request, pk=None):
        """
        Mark availability for a time slot.

        POST /api/decisions/{id}/time_vote/
        Body: {"time_option_id": "...", "voter_ref": "guest:...", "present": true}
        """
        serializer = TimeVoteInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            slot = cast_time_vote(decision_id=pk, **serializer.validated_data)
        except (DecisionNotFoundError, OptionNotFoundError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except (NotAParticipantError, DecisionNotVotingError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(TimeVoteResultSerializer({
            'recommended_slot': slot.id if slot else None,
        }).data)

    @extend_schema(request=None, responses={200: DecisionSerializer})
    @action(detail=True, methods=['post'])
    def close_voting(self, request, pk=None):
        """End voting early; the option with the most YES votes wins."""
        try:
            close_voting(decision_id=pk)
        except DecisionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except (DecisionNotVotingError, NoOptionsError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        decision = Decision.objects.select_related('final_option').get(id=pk)
        return Response(DecisionSerializer(decision).data)

    @extend_schema(request=TransitionInputSerializer, responses={200: DecisionSerializer})
    @action(detail=True, methods=['post'])
    def transition(self, request, pk=None):
        """Move the decision to VOTING, COMPLETED or CANCELLED."""
        serializer = TransitionInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            decision = transition_decision(
                decision_id=pk,
                new_status=serializer.validated_data['status']
            )
        except DecisionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidStateTransitionError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(DecisionSerializer(decision).data)

    @extend_schema(responses={200: DecisionMessageSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def messages(self, request, pk=None):
        """System announcements for the decision."""
        decision = self.get_object()
        serializer = DecisionMessageSerializer(get_messages(decision_id=decision.id), many=True)
        return Response(serializer.data)
