import logging
from functools import wraps

from django.conf import settings
from django.http import JsonResponse
from django.utils.crypto import constant_time_compare

from core.api import api_view, json_error, read_json
from .forms import PasswordForm
from .middleware import SESSION_LOGIN_KEY

logger = logging.getLogger(__name__)

SESSION_MANUAL_ATTENDANCE_KEY = 'manual_attendance_verified'


def _check_password(request, expected):
    form = PasswordForm(read_json(request))
    if not form.is_valid():
        return False
    return constant_time_compare(form.cleaned_data['password'], expected)


@api_view(['POST'])
def login(request):
    """Log in with the shared classroom password."""
    if not _check_password(request, settings.CLASSBOOK_LOGIN_PASSWORD):
        logger.warning(f"Failed login attempt from {request.META.get('REMOTE_ADDR')}")
        return json_error('Incorrect password.', status=401)

    request.session.cycle_key()
    request.session[SESSION_LOGIN_KEY] = True
    return JsonResponse({'logged_in': True})


@api_view(['POST'])
def logout(request):
    request.session.flush()
    return JsonResponse({'logged_in': False})


@api_view(['GET'])
def status(request):
    return JsonResponse({
        'logged_in': bool(request.session.get(SESSION_LOGIN_KEY)),
        'manual_attendance_verified': bool(request.session.get(SESSION_MANUAL_ATTENDANCE_KEY)),
    })


@api_view(['POST'])
def verify_manual_attendance(request):
    """Unlock backdated attendance for the rest of the session."""
    if not _check_password(request, settings.CLASSBOOK_MANUAL_ATTENDANCE_PASSWORD):
        return json_error('Incorrect password.', status=403)

    request.session[SESSION_MANUAL_ATTENDANCE_KEY] = True
    return JsonResponse({'verified': True})


def manual_attendance_required(view_func):
    """Decorator to require the manual attendance password for this session."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not request.session.get(SESSION_MANUAL_ATTENDANCE_KEY):
            return json_error('Manual attendance requires password verification.', status=403)
        return view_func(request, *args, **kwargs)
    return _wrapped_view
