"""Shared helpers for the JSON views."""
import json
import logging
from functools import wraps

from django.core.exceptions import ValidationError
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def error_payload(exc):
    """Flatten a ValidationError into something JSON can carry."""
    if hasattr(exc, 'error_dict'):
        return {field: [str(m) for m in messages] for field, messages in exc.message_dict.items()}
    return {'__all__': [str(m) for m in exc.messages]}


def json_error(message, status=400):
    return JsonResponse({'errors': {'__all__': [message]}}, status=status)


def read_json(request):
    """
    Decode the request body.

    Form-encoded posts are accepted as well so the views can be driven from
    plain HTML forms and the Django test client alike.
    """
    if request.content_type == 'application/json':
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except (ValueError, UnicodeDecodeError):
            raise ValidationError("Request body is not valid JSON.")
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object.")
        return data
    return request.POST.dict()


def api_view(methods=('GET',)):
    """
    Restrict a view to ``methods`` and turn validation failures into 400s.

    Views raise ``ValidationError`` from models, forms or services; the
    client receives ``{"errors": {...}}``.
    """
    allowed = tuple(m.upper() for m in methods)

    def decorator(view_func):
        @wraps(view_func)
        def _wrapped_view(request, *args, **kwargs):
            if request.method not in allowed:
                response = json_error(f"Method {request.method} not allowed.", status=405)
                response['Allow'] = ', '.join(allowed)
                return response
            try:
                return view_func(request, *args, **kwargs)
            except ValidationError as exc:
                logger.info(f"{view_func.__name__} rejected input: {exc.messages}")
                return JsonResponse({'errors': error_payload(exc)}, status=400)
        return _wrapped_view
    return decorator
