"""
HTTP client for the calling provider (Bland AI).

This is the only module that talks to the provider over the network.
Every failure (transport error, non-2xx response, rejected placement,
unparseable body) is raised as ``ProviderCallFailed``.
"""

import logging
from typing import Any, Optional

import pydantic
import requests

from ivrmap.config import settings
from ivrmap.errors import ProviderCallFailed
from ivrmap.schemas.transcript_schema import CallDetails, Role, Utterance
from ivrmap.calling.transcript import map_role

logger = logging.getLogger(__name__)


def _auth_header(api_key: str) -> str:
    return api_key if api_key.startswith("Bearer ") else f"Bearer {api_key}"


class BlandClient:
    """Thin wrapper over the provider's REST endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        cfg = settings.provider
        self.api_key = api_key if api_key is not None else cfg.api_key
        self.base_url = (base_url or cfg.base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else cfg.request_timeout_sec
        self._http = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"Authorization": _auth_header(self.api_key)}
        if "json" in kwargs:
            headers["Content-Type"] = "application/json"
        try:
            response = self._http.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise ProviderCallFailed(f"{method} {path} failed: {e}") from e

        if not response.ok:
            raise ProviderCallFailed(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderCallFailed(f"{method} {path} returned invalid JSON") from e

    def place_call(
        self,
        phone_number: str,
        task: str,
        *,
        wait_for_greeting: bool = True,
        voicemail_detect: bool = True,
        record: bool = True,
        max_duration: int = 300,
        ivr_mode: bool = True,
    ) -> str:
        """Queue an outbound call and return its provider call id."""
        payload = {
            "phone_number": phone_number,
            "task": task,
            "wait_for_greeting": wait_for_greeting,
            "ivr_mode": ivr_mode,
            "record": record,
            "voicemail_detect": voicemail_detect,
            "max_duration": max_duration,
        }
        logger.info(
            "Placing call to %s (max_duration=%ds, voicemail_detect=%s)",
            phone_number, max_duration, voicemail_detect,
        )
        data = self._request("POST", "/calls", json=payload)
        if not isinstance(data, dict):
            raise ProviderCallFailed(f"Call placement returned {data!r}")
        if data.get("status") != "success" or not data.get("call_id"):
            message = data.get("message") or data.get("error_message") or data
            raise ProviderCallFailed(f"Call placement rejected: {message}")
        logger.info("Call queued: %s", data["call_id"])
        return str(data["call_id"])

    def get_call_details(self, call_id: str) -> CallDetails:
        """Fetch status, cost, and transcripts for a call."""
        data = self._request("GET", f"/calls/{call_id}")
        try:
            return CallDetails.model_validate(data)
        except pydantic.ValidationError as e:
            raise ProviderCallFailed(f"Unexpected call details payload for {call_id}: {e}") from e

    def get_corrected_transcript(self, call_id: str) -> Optional[list[Utterance]]:
        """Fetch the provider's corrected/aligned transcript, if it has one."""
        data = self._request("GET", f"/calls/{call_id}/correct")
        aligned = data.get("aligned") if isinstance(data, dict) else None
        if not aligned:
            return None
        utterances: list[Utterance] = []
        for item in aligned:
            if not isinstance(item, dict):
                continue
            text = str(item.get("text") or "").strip()
            if not text:
                continue
            role = map_role(item.get("user") or item.get("speaker") or Role.ASSISTANT.value)
            utterances.append(Utterance(role=role, message=text))
        return utterances or None
