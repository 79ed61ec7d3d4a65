import logging

from django.http import JsonResponse

from .errors import ServiceError

logger = logging.getLogger("marketplace")


class ServiceErrorMiddleware:
    """Render uncaught backing-service failures as JSON errors."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not isinstance(exception, ServiceError):
            return None

        logger.error(f"[{request.method} {request.path}] {exception.code}: {exception.message}")
        body = {"error": exception.code, "message": exception.message}
        if exception.details is not None:
            body["details"] = exception.details
        return JsonResponse(body, status=exception.status)
