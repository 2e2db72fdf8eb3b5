from rest_framework import serializers
from .models import (
    Decision,
    DecisionMessage,
    DecisionStatus,
    Option,
    Participant,
    RSVPStatus,
    TimeOption,
    VoteValue,
)
from .voter_ref import VoterRef, InvalidVoterRefError


# =============================================================================
# Input Serializers
# =============================================================================

class VoterRefField(serializers.CharField):
    """'user:<ref>' or 'guest:<ref>'."""

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            return VoterRef.parse(value)
        except InvalidVoterRefError as e:
            raise serializers.ValidationError(str(e))

    def to_representation(self, value):
        return str(value)


class DecisionCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    consensus_threshold = serializers.IntegerField(min_value=0, max_value=100, required=False)
    voting_enabled = serializers.BooleanField(required=False, default=True)
    status = serializers.ChoiceField(
        choices=[DecisionStatus.PLANNING, DecisionStatus.VOTING],
        required=False,
        default=DecisionStatus.PLANNING
    )


class ParticipantCreateSerializer(serializers.Serializer):
    voter_ref = VoterRefField(max_length=80)
    display_name = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    is_mandatory = serializers.BooleanField(required=False, default=False)


class MandatoryInputSerializer(serializers.Serializer):
    is_mandatory = serializers.BooleanField()


class RSVPInputSerializer(serializers.Serializer):
    voter_ref = VoterRefField(max_length=80)
    rsvp_status = serializers.ChoiceField(
        choices=[RSVPStatus.GOING, RSVPStatus.MAYBE, RSVPStatus.NOT_GOING]
    )


class OptionCreateSerializer(serializers.Serializer):
    label = serializers.CharField(max_length=200)


class TimeOptionCreateSerializer(serializers.Serializer):
    starts_at = serializers.DateTimeField()
    ends_at = serializers.DateTimeField(required=False, allow_null=True, default=None)
    label = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')

    def validate(self, attrs):
        """Validate slot range."""
        if attrs.get('ends_at') and attrs['ends_at'] <= attrs['starts_at']:
            raise serializers.ValidationError({
                'ends_at': 'End time must be after start time'
            })
        return attrs


class VoteInputSerializer(serializers.Serializer):
    option_id = serializers.UUIDField()
    voter_ref = VoterRefField(max_length=80)
    value = serializers.ChoiceField(choices=VoteValue.choices)


class TimeVoteInputSerializer(serializers.Serializer):
    time_option_id = serializers.UUIDField()
    voter_ref = VoterRefField(max_length=80)
    present = serializers.BooleanField()


class TransitionInputSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DecisionStatus.choices)


# =============================================================================
# Output Serializers
# =============================================================================

class ParticipantSerializer(serializers.ModelSerializer):
    voter_ref = serializers.SerializerMethodField()

    class Meta:
        model = Participant
        fields = [
            'id',
            'voter_ref',
            'display_name',
            'is_mandatory',
            'rsvp_status',
            'position',
            'joined_at',
        ]
        read_only_fields = fields

    def get_voter_ref(self, obj):
        return str(obj.voter_ref)


class OptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Option
        fields = ['id', 'label', 'position', 'created_at']
        read_only_fields = fields


class TimeOptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = TimeOption
        fields = ['id', 'label', 'starts_at', 'ends_at', 'position', 'created_at']
        read_only_fields = fields


class OptionTallySerializer(serializers.Serializer):
    """Serializes consensus.OptionTally tuples."""
    option = OptionSerializer()
    yes = serializers.IntegerField()
    no = serializers.IntegerField()
    maybe = serializers.IntegerField()
    percentage = serializers.FloatField()
    mandatory_missing = serializers.IntegerField()
    meets_threshold = serializers.BooleanField()


class SlotTallySerializer(serializers.Serializer):
    time_option = TimeOptionSerializer()
    votes = serializers.IntegerField()
    is_recommended = serializers.BooleanField()


class DecisionSerializer(serializers.ModelSerializer):
    """Decision header, without tallies."""

    final_option = OptionSerializer(read_only=True)

    class Meta:
        model = Decision
        fields = [
            'id',
            'title',
            'description',
            'status',
            'consensus_threshold',
            'voting_enabled',
            'final_option',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class DecisionDetailSerializer(DecisionSerializer):
    """Full polling view: roster, option tallies, time tallies."""

    participants = ParticipantSerializer(many=True, read_only=True)
    options = serializers.SerializerMethodField()
    time_options = serializers.SerializerMethodField()
    recommended_slot = serializers.SerializerMethodField()

    class Meta(DecisionSerializer.Meta):
        fields = DecisionSerializer.Meta.fields + [
            'participants',
            'options',
            'time_options',
            'recommended_slot',
        ]
        read_only_fields = fields

    def get_options(self, obj):
        from .services import consensus_snapshot
        return OptionTallySerializer(consensus_snapshot(decision=obj), many=True).data

    def get_time_options(self, obj):
        from .services import time_tallies
        return SlotTallySerializer(time_tallies(decision=obj), many=True).data

    def get_recommended_slot(self, obj):
        from .services import recommended_slot
        slot = recommended_slot(decision_id=obj.id)
        return str(slot.id) if slot else None


class DecisionMessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = DecisionMessage
        fields = ['id', 'kind', 'content', 'created_at']
        read_only_fields = fields


class VoteResultSerializer(serializers.Serializer):
    accepted = serializers.BooleanField()
    evaluated = serializers.BooleanField()
    decision_status = serializers.CharField()
    final_option_id = serializers.UUIDField(allow_null=True)


class TimeVoteResultSerializer(serializers.Serializer):
    recommended_slot = serializers.UUIDField(allow_null=True)
