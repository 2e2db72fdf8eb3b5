"""
Messaging sink for system announcements.

The consensus engine only needs somewhere to drop a system-authored
string when a decision confirms; the default sink stores it in the
decision's message feed.
"""

import logging

from apps.decisions.models import Decision, DecisionMessage, MessageKind

logger = logging.getLogger(__name__)


def post_system_message(*, decision: Decision, content: str) -> DecisionMessage:
    message = DecisionMessage.objects.create(
        decision=decision,
        kind=MessageKind.SYSTEM,
        content=content,
    )
    logger.info("System message posted to decision %s: %s", decision.id, content)
    return message


def get_messages(*, decision_id):
    return DecisionMessage.objects.filter(decision_id=decision_id).order_by('created_at')
