import base64
import binascii
import hmac
from functools import wraps

from django.conf import settings
from django.http import HttpResponse


def basic_auth_required(view_func):
    """
    Decorator that guards the metrics endpoints with Basic Authentication.
    Returns 404 while metrics collection is disabled.
    """

    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not settings.PROMETHEUS_METRICS_ENABLED:
            return HttpResponse("Metrics collection is disabled", status=404)

        if check_basic_auth(request.META.get("HTTP_AUTHORIZATION")):
            return view_func(request, *args, **kwargs)
        return unauthorized_response()

    return _wrapped_view


def check_basic_auth(auth_header):
    """Check an Authorization header against the configured metrics credentials."""
    if not auth_header or " " not in auth_header:
        return False

    auth_type, auth_string = auth_header.split(" ", 1)
    if auth_type.lower() != "basic":
        return False

    try:
        auth_decoded = base64.b64decode(auth_string).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return False
    if ":" not in auth_decoded:
        return False
    username, password = auth_decoded.split(":", 1)

    expected_username = settings.PROMETHEUS_METRICS_AUTH_USERNAME
    expected_password = settings.PROMETHEUS_METRICS_AUTH_PASSWORD
    if not expected_username or not expected_password:
        return False
    return hmac.compare_digest(username, expected_username) and hmac.compare_digest(password, expected_password)


def unauthorized_response():
    """Return a 401 Unauthorized response with WWW-Authenticate header"""
    response = HttpResponse("Unauthorized: Authentication credentials were not provided or are invalid.", status=401)
    response["WWW-Authenticate"] = 'Basic realm="Jeopardy Metrics"'
    return response
