from __future__ import annotations

"""
Quality-tiered fetch: query one upstream endpoint at HIGH, then MEDIUM, then
BASE quality until a tier answers.

Coverage differs per tier and region, so a "not found" at HIGH or MEDIUM only
means "try the next tier". Any other failure (quota, bad request, unparseable
body, transport error) is terminal and no lower tier is requested. What
happens on a terminal failure is the caller's FailurePolicy:

  PROPAGATE  raise the failure (NoDataAvailable when every tier said not found)
  SWALLOW    log it and return None

Tiers of one call are always requested sequentially; the first success wins.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import requests

from common.errors import NoDataAvailable, SolarProxyError, UpstreamError
from common.logging_setup import get_logger
from common.types import Coordinate, FetchAttempt, QualityTier, TieredResult
from solar_api.transport import http_get, redact_key


log = get_logger(__name__)

UrlBuilder = Callable[[Coordinate, QualityTier], str]


class FailurePolicy(str, Enum):
    PROPAGATE = "propagate"
    SWALLOW = "swallow"


class FetchState(str, Enum):
    TRYING = "trying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class _Progress:
    state: FetchState = FetchState.TRYING
    tier: Optional[QualityTier] = None
    result: Optional[TieredResult] = None
    reason: Optional[SolarProxyError] = None


class QualityTieredFetcher:
    def __init__(
        self,
        build_url: UrlBuilder,
        *,
        session: Optional[requests.Session] = None,
        policy: FailurePolicy = FailurePolicy.PROPAGATE,
        timeout: float = 30.0,
        label: str = "solar",
    ):
        """
        Params:
            build_url: (coordinate, tier) -> fully-qualified URL, tier extras included
            session: optional requests.Session for connection reuse
            policy: terminal-failure behaviour (see module docstring)
            timeout: per-request timeout in seconds
            label: name used in log lines
        """
        self.build_url = build_url
        self.session = session or requests.Session()
        self.policy = policy
        self.timeout = timeout
        self.label = label

    # ----------------------------
    # Public API
    # ----------------------------
    def fetch_best_available(self, coordinate: Coordinate) -> Optional[TieredResult]:
        """
        Return (tier, payload) from the best tier that has data.

        Returns None only under FailurePolicy.SWALLOW.
        Raises (PROPAGATE): NoDataAvailable, UpstreamError, NetworkError.
        """
        progress = _Progress()
        for tier in QualityTier.ordered():
            progress.tier = tier
            self._step(coordinate, progress)
            if progress.state is not FetchState.TRYING:
                break
        else:
            # every tier reported "not found"
            progress.state = FetchState.FAILED
            progress.reason = NoDataAvailable()

        if progress.state is FetchState.SUCCEEDED:
            return progress.result
        return self._on_failure(progress.reason)

    # ----------------------------
    # State machine
    # ----------------------------
    def _step(self, coordinate: Coordinate, progress: _Progress) -> None:
        tier = progress.tier
        try:
            attempt = self._attempt(coordinate, tier)
        except SolarProxyError as e:
            progress.state, progress.reason = FetchState.FAILED, e
            return

        if attempt.ok:
            progress.state = FetchState.SUCCEEDED
            progress.result = TieredResult(tier=tier, payload=attempt.payload or {})
            return

        if attempt.is_not_found:
            if tier.is_last:
                progress.state, progress.reason = FetchState.FAILED, NoDataAvailable()
            else:
                log.info("%s quality not available, trying next level...", tier.value)
            return

        message = attempt.error_message or attempt.status
        progress.state = FetchState.FAILED
        progress.reason = UpstreamError(f"Solar API error: {message}", status=attempt.status)

    def _attempt(self, coordinate: Coordinate, tier: QualityTier) -> FetchAttempt:
        url = self.build_url(coordinate, tier)
        r = http_get(self.session, url, timeout=self.timeout)
        log.info(
            "%s response status %s for quality %s",
            self.label,
            r.status_code,
            tier.value,
            extra={"ctx": {"url": redact_key(url), "content_type": r.headers.get("content-type")}},
        )
        log.debug("%s response body (first 200 chars): %s", self.label, r.text[:200])

        attempt = FetchAttempt(tier=tier, status=r.status_code, body=r.text)
        try:
            attempt.payload = json.loads(attempt.body)
        except ValueError:
            log.error("JSON parse error for quality %s; raw body: %s", tier.value, attempt.body)
            raise UpstreamError(
                f"Invalid JSON response: {attempt.body[:100]}", status=attempt.status
            ) from None
        return attempt

    def _on_failure(self, reason: Optional[SolarProxyError]) -> None:
        reason = reason or NoDataAvailable()
        if self.policy is FailurePolicy.SWALLOW:
            log.warning("%s fetch failed: %s", self.label, reason)
            return None
        log.error("%s fetch failed: %s", self.label, reason)
        raise reason
