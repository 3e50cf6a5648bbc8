from rest_framework.throttling import UserRateThrottle


class AuthRateThrottle(UserRateThrottle):
    """Limits credential endpoints (login, register, password reset)"""
    scope = 'auth'


class ContactRateThrottle(UserRateThrottle):
    """Limits public form submissions; reads are not counted"""
    scope = 'contact'

    def allow_request(self, request, view):
        if request.method != 'POST':
            return True
        return super().allow_request(request, view)
