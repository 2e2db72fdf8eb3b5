# ==========================================
# apps/decisions/admin.py
# ==========================================

from django.contrib import admin
from apps.decisions.models import Decision, DecisionMessage, Option, Participant, TimeOption


class ParticipantInline(admin.TabularInline):
    """Inline admin for decision participants."""
    model = Participant
    extra = 0
    fields = ['user_ref', 'guest_ref', 'display_name', 'is_mandatory', 'rsvp_status', 'joined_at']
    # Mandatory flags change under the decision lock, via set_mandatory
    readonly_fields = ['is_mandatory', 'joined_at']


class ReadOnlyInline(admin.TabularInline):
    """Options are fixed once added; confirmed decisions point at them."""
    extra = 0
    can_delete = False

    def get_readonly_fields(self, request, obj=None):
        return self.fields

    def has_add_permission(self, request, obj=None):
        return False


class OptionInline(ReadOnlyInline):
    model = Option
    fields = ['label', 'position', 'created_at']


class TimeOptionInline(ReadOnlyInline):
    model = TimeOption
    fields = ['label', 'starts_at', 'ends_at', 'position']


@admin.register(Decision)
class DecisionAdmin(admin.ModelAdmin):
    """Admin interface for Decisions."""

    list_display = [
        'title',
        'status',
        'consensus_threshold',
        'voting_enabled',
        'participant_count',
        'final_option',
        'created_at'
    ]
    list_filter = ['status', 'voting_enabled', 'created_at']
    search_fields = ['title', 'description']
    # Status and final option only change through the consensus engine
    readonly_fields = ['status', 'final_option', 'created_at', 'updated_at']
    inlines = [ParticipantInline, OptionInline, TimeOptionInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('title', 'description')
        }),
        ('Voting', {
            'fields': ('status', 'consensus_threshold', 'voting_enabled', 'final_option')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def participant_count(self, obj):
        """Show number of participants."""
        return obj.participants.count()
    participant_count.short_description = 'Participants'


@admin.register(DecisionMessage)
class DecisionMessageAdmin(admin.ModelAdmin):
    list_display = ['decision', 'kind', 'content', 'created_at']
    list_filter = ['kind']
    readonly_fields = ['decision', 'kind', 'content', 'created_at']
