import logging

from django.db import transaction

from .models import SupportMessage, SupportThread

logger = logging.getLogger(__name__)


def get_or_create_thread(user) -> SupportThread:
    thread, created = SupportThread.objects.get_or_create(user=user)
    if created:
        logger.info("Opened support thread %s for user %s", thread.id, user.id)
    return thread


@transaction.atomic
def post_message(thread: SupportThread, sender, text: str) -> SupportMessage:
    """
    Append a message to the thread.

    A message from the thread owner reopens a closed thread. Staff replies
    push a ``support_message`` event to the owner.
    """
    message = SupportMessage.objects.create(
        thread=thread,
        sender=sender,
        sender_role=sender.role,
        message=text,
    )

    if sender.id == thread.user_id:
        thread.status = 'open'
    thread.save(update_fields=['status', 'updated_at'])

    if sender.id != thread.user_id:
        transaction.on_commit(lambda: _notify_owner(thread.user_id, message))
    return message


def close_thread(thread: SupportThread) -> SupportThread:
    thread.status = 'closed'
    thread.save(update_fields=['status', 'updated_at'])
    return thread


def _notify_owner(user_id, message):
    from realtime.notifications import notify_user_event

    notify_user_event(user_id, 'support_message', {
        'thread_id': message.thread_id,
        'message_id': message.id,
        'message': message.message,
    })
