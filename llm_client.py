"""Chat-completion client used by the proxy.

Sends one user message to ``<base_url>/chat/completions`` and returns the
text of the first choice. Any failure is raised as ``UpstreamError`` so the
HTTP layer can report it inside the JSON body.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from llm_settings import Settings

logger = logging.getLogger(__name__)

NO_RESPONSE = "no response from GPT"
MALFORMED = "malformed provider response"


class UpstreamError(Exception):
    """Provider call failed.

    ``cause`` is the underlying error and ``response``
    is whatever body was received before the failure, if any.
    """

    def __init__(self, cause: Any, response: Optional[Any] = None):
        super().__init__(cause)
        self.cause = cause
        self.response = response

    def __str__(self) -> str:
        resp = self.response if self.response is not None else {}
        return f"ERR: {self.cause} RESP: {resp}"


class NoChoicesError(UpstreamError):
    """Provider answered but returned zero choices."""

    def __init__(self):
        super().__init__(NO_RESPONSE)

    def __str__(self) -> str:
        return NO_RESPONSE


class CompletionClient:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {settings.openai_api_key}",
                "Content-Type": "application/json",
            }
        )

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.settings.openai_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.settings.model_temperature,
        }

    def ask(self, prompt: str) -> str:
        """Return the first choice's text for ``prompt``."""
        url = self.settings.completions_url
        logger.debug("POST %s model=%s", url, self.settings.openai_model)
        try:
            resp = self.session.post(
                url,
                json=self.build_payload(prompt),
                timeout=self.settings.request_timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError(e) from e

        try:
            data = resp.json()
        except ValueError:
            data = None
        snapshot = data if data is not None else {"status": resp.status_code, "body": resp.text}

        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            raise UpstreamError(e, snapshot) from e
        if data is None:
            raise UpstreamError("provider returned a non-JSON body", snapshot)

        if not isinstance(data, dict):
            raise UpstreamError(MALFORMED, data)
        choices = data.get("choices")
        if choices is None or choices == []:
            raise NoChoicesError()
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise UpstreamError(MALFORMED, data)

        message = choices[0].get("message")
        if message is None:
            return ""
        if not isinstance(message, dict):
            raise UpstreamError(MALFORMED, data)
        content = message.get("content")
        if content is not None and not isinstance(content, str):
            raise UpstreamError(MALFORMED, data)
        return content or ""
