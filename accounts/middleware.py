from django.shortcuts import redirect
from django.urls import NoReverseMatch, reverse


class ForcePasswordChangeMiddleware:
    """
    Redirects users flagged with must_change_password to the password change page.
    """

    ALLOWED_URL_NAMES = [
        'accounts:password_change',
        'accounts:logout',
        'admin:logout',
    ]

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated and getattr(user, 'must_change_password', False):
            path = request.path
            if not path.startswith(('/static/', '/media/')) and path not in self.allowed_paths():
                return redirect('accounts:password_change')

        return self.get_response(request)

    def allowed_paths(self):
        paths = []
        for url_name in self.ALLOWED_URL_NAMES:
            try:
                paths.append(reverse(url_name))
            except NoReverseMatch:
                continue
        return paths
