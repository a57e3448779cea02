"""
core.throttling — Scoped rate limiting with arbitrary windows.

DRF's stock ``ScopedRateThrottle`` only understands the periods
``s/m/h/d``.  The rate limits of this service are configured as
"N requests per W milliseconds" (e.g. 5 logins per 15 minutes), so the
rates in ``settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"]`` are written
as ``"<requests>/<seconds>s"`` and parsed here.

Views opt in by declaring ``throttle_scope``; views without a scope are
not throttled.  Views that also mix in ``FailedAttemptsOnlyMixin`` only
spend their budget on requests answered with an error (the login and
registration endpoints).
"""

from __future__ import annotations

import re

from rest_framework.throttling import ScopedRateThrottle

_RATE_RE = re.compile(r"^(?P<num>\d+)/(?P<count>\d*)(?P<unit>[smhd])\w*$")

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


class WindowedScopedRateThrottle(ScopedRateThrottle):
    """``ScopedRateThrottle`` accepting rates such as ``"5/900s"``."""

    def parse_rate(self, rate):
        if rate is None:
            return (None, None)
        match = _RATE_RE.match(rate.strip())
        if match is None:
            return super().parse_rate(rate)
        num_requests = int(match.group("num"))
        multiplier = int(match.group("count") or 1)
        duration = multiplier * _UNIT_SECONDS[match.group("unit")]
        return (num_requests, duration)

    def forget(self):
        """Drop the hit recorded by the last ``allow_request`` call."""
        history = getattr(self, "history", None)
        if not history or history[0] != getattr(self, "now", None):
            return
        history.pop(0)
        self.cache.set(self.key, history, self.duration)


class FailedAttemptsOnlyMixin:
    """
    APIView mixin: responses below 400 do not count against the throttle.

    The throttles built for the request are kept on the view so that
    ``finalize_response`` can take back the hit once the outcome is known.
    """

    def get_throttles(self):
        self._request_throttles = super().get_throttles()
        return self._request_throttles

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        if response.status_code < 400:
            for throttle in getattr(self, "_request_throttles", ()):
                if isinstance(throttle, WindowedScopedRateThrottle):
                    throttle.forget()
        return response
