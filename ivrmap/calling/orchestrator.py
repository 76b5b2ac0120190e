"""
Call orchestration: place one call, poll it to a terminal status, fetch its transcript.

Polling backs off geometrically on transient provider errors (doubling the
wait up to a ceiling) and resets to the base interval after any successful
status query. The overall wait is bounded by a timeout.

Usage:
    orchestrator = CallOrchestrator(BlandClient())
    handle = orchestrator.place_call("+18005551234", task)
    result = orchestrator.await_completion(handle)
    utterances = orchestrator.fetch_transcript(handle, result)
"""

import time
from typing import Any, Callable, Optional, Protocol

from ivrmap.calling.transcript import normalize_entries, parse_concatenated_transcript
from ivrmap.config import settings
from ivrmap.errors import PollTimeout, ProviderCallFailed, TranscriptUnavailable
from ivrmap.logging_context import get_call_logger, set_call_id
from ivrmap.schemas.transcript_schema import (
    CallDetails,
    CallHandle,
    CallResult,
    Utterance,
)
from ivrmap.utils import to_e164

logger = get_call_logger(__name__)

TERMINAL_STATUSES = frozenset({"completed", "failed", "canceled"})


class CallProvider(Protocol):
    """What the orchestrator needs from a calling provider."""

    def place_call(self, phone_number: str, task: str, **options: Any) -> str: ...

    def get_call_details(self, call_id: str) -> CallDetails: ...

    def get_corrected_transcript(self, call_id: str) -> Optional[list[Utterance]]: ...


class CallOrchestrator:
    """Drives exactly one external call at a time."""

    def __init__(
        self,
        provider: CallProvider,
        *,
        poll_interval: Optional[float] = None,
        min_interval: Optional[float] = None,
        max_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        cfg = settings.poll
        self.provider = provider
        self.poll_interval = poll_interval if poll_interval is not None else cfg.interval_sec
        self.min_interval = min_interval if min_interval is not None else cfg.min_interval_sec
        self.max_interval = max_interval if max_interval is not None else cfg.max_interval_sec
        self.timeout = timeout if timeout is not None else cfg.timeout_sec
        self._sleep = sleep
        self._clock = clock

    def place_call(self, identity: str, instructions: str) -> CallHandle:
        """Normalize the target number and queue a call carrying ``instructions``.

        Raises:
            InvalidIdentity: If the number cannot be normalized.
            ProviderCallFailed: If the provider rejects the call.
        """
        phone = to_e164(identity)
        cfg = settings.provider
        call_id = self.provider.place_call(
            phone,
            instructions,
            wait_for_greeting=cfg.wait_for_greeting,
            voicemail_detect=cfg.voicemail_detect,
            record=cfg.record,
            max_duration=cfg.max_duration_sec,
            ivr_mode=cfg.ivr_mode,
        )
        set_call_id(call_id)
        logger.info("Call placed to %s", phone)
        return CallHandle(call_id=call_id, identity=phone)

    def _base_wait(self, poll_interval: Optional[float]) -> float:
        interval = self.poll_interval if poll_interval is None else poll_interval
        return max(self.min_interval, interval)

    def await_completion(
        self,
        handle: CallHandle,
        *,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> CallResult:
        """Poll call status until it is terminal.

        Raises:
            PollTimeout: If no terminal status is seen before the timeout.
        """
        base = self._base_wait(poll_interval)
        limit = self.timeout if timeout is None else timeout
        wait = base
        start = self._clock()

        while self._clock() - start < limit:
            try:
                details = self.provider.get_call_details(handle.call_id)
            except ProviderCallFailed as e:
                wait = min(wait * 2, self.max_interval)
                logger.warning("Poll error, backing off to %.1fs: %s", wait, e)
            else:
                status = (details.status or "").lower()
                if status in TERMINAL_STATUSES:
                    logger.info("Call reached terminal status '%s'", status)
                    return _to_result(details, status)
                wait = base
                logger.debug("Call status '%s', next poll in %.1fs", details.status, wait)
            # Never sleep past the deadline
            self._sleep(min(wait, limit - (self._clock() - start)))

        logger.error("Polling timed out after %.0fs", limit)
        raise PollTimeout(f"Call {handle.call_id} did not finish within {limit:.0f}s")

    def fetch_transcript(
        self, handle: CallHandle, result: Optional[CallResult] = None
    ) -> list[Utterance]:
        """Return the best available transcript for a finished call.

        Preference: corrected transcript, structured per-utterance
        transcript, then the parsed concatenated transcript.

        Raises:
            TranscriptUnavailable: If none of them yields any utterance.
        """
        try:
            corrected = self.provider.get_corrected_transcript(handle.call_id)
        except ProviderCallFailed as e:
            logger.debug("Corrected transcript unavailable: %s", e)
            corrected = None
        if corrected:
            logger.debug("Using corrected transcript (%d utterances)", len(corrected))
            return corrected

        if result is None:
            result = _to_result(self.provider.get_call_details(handle.call_id))

        structured = normalize_entries(result.entries)
        if structured:
            logger.debug("Using structured transcript (%d utterances)", len(structured))
            return structured

        fallback = parse_concatenated_transcript(result.concatenated_transcript)
        if fallback:
            logger.info("Structured transcript empty; parsed concatenated transcript")
            return fallback

        raise TranscriptUnavailable(f"No transcript available for call {handle.call_id}")


def _to_result(details: CallDetails, status: Optional[str] = None) -> CallResult:
    price = details.price if details.price is not None else 0.0
    return CallResult(
        call_id=details.call_id,
        status=status or (details.status or "").lower(),
        answered_by=details.answered_by,
        price=price,
        started_at=details.started_at,
        ended_at=details.end_at,
        concatenated_transcript=details.concatenated_transcript,
        entries=list(details.transcripts),
    )
