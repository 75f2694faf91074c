"""
Request timing middleware.
"""
import logging
import time

logger = logging.getLogger(__name__)


class ServerTimingMiddleware:
    """
    Logs every request with its duration and, when the caller passes
    ``?perf=1``, echoes the duration in a ``Server-Timing`` header so the
    client can show it in its perf overlay.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.perf_counter()
        response = self.get_response(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        if request.GET.get('perf') == '1':
            response['Server-Timing'] = f'total;dur={elapsed_ms:.1f}'

        logger.debug(
            f"{request.method} {request.path} -> {response.status_code} "
            f"in {elapsed_ms:.1f}ms"
        )
        return response
