"""User-visible notifications (success/error toasts) backed by django.contrib.messages."""
import logging

from django.contrib import messages

logger = logging.getLogger(__name__)


def _http_request(request):
    # DRF wraps the HttpRequest; the messages framework wants the original
    return getattr(request, '_request', request)


class Notifier:
    def __init__(self, request=None):
        self.request = _http_request(request) if request is not None else None

    def success(self, message: str):
        self._add(messages.SUCCESS, message)

    def error(self, message: str):
        self._add(messages.ERROR, message)

    def _add(self, level, message):
        if self.request is None:
            logger.debug(f'Notification without request: {message}')
            return
        messages.add_message(self.request, level, message, fail_silently=True)


def drain(request):
    """Consume pending notifications as a list of {level, message} dicts."""
    storage = messages.get_messages(_http_request(request))
    return [
        {'level': message.level_tag or 'info', 'message': str(message)}
        for message in storage
    ]
