from django.http import JsonResponse
from django.urls import reverse

SESSION_LOGIN_KEY = 'is_logged_in'


class SharedPasswordMiddleware:
    """
    Middleware that keeps the app behind the shared classroom password.
    Requests without a logged-in session get a 401 JSON response.
    """

    # URL names that stay reachable without logging in
    ALLOWED_URL_NAMES = [
        'accounts:login',
        'accounts:logout',
        'accounts:status',
    ]

    # Path prefixes with their own access control or no need for any
    ALLOWED_PREFIXES = ('/static/', '/media/', '/admin/')

    def __init__(self, get_response):
        self.get_response = get_response
        self._allowed_paths = None

    def allowed_paths(self):
        if self._allowed_paths is None:
            self._allowed_paths = {reverse(url_name) for url_name in self.ALLOWED_URL_NAMES}
        return self._allowed_paths

    def __call__(self, request):
        current_path = request.path
        is_allowed = (
            current_path in self.allowed_paths()
            or current_path.startswith(self.ALLOWED_PREFIXES)
        )

        if not is_allowed and not request.session.get(SESSION_LOGIN_KEY):
            return JsonResponse({'errors': {'__all__': ['Authentication required.']}}, status=401)

        response = self.get_response(request)
        return response
