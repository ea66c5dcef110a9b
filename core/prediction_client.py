"""Thin HTTP client for the asynchronous prediction API."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import requests

from utils.logger import setup_logger

TERMINAL_SUCCESS = "succeeded"
TERMINAL_FAILURE = frozenset({"failed", "canceled"})


class PredictionNetworkError(RuntimeError):
    """The request never produced an HTTP response."""


class PredictionAPIError(RuntimeError):
    def __init__(self, status: int, body: Any) -> None:
        super().__init__(f"Prediction API responded with status {status}")
        self.status = status
        self.body = body


class PredictionClient:
    def __init__(
        self,
        token: str,
        *,
        api_base: str = "https://api.replicate.com/v1",
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        logger=None,
    ) -> None:
        self.token = token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logger or setup_logger(self.__class__.__name__)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise PredictionNetworkError(str(exc)) from exc
        if not 200 <= response.status_code < 300:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            raise PredictionAPIError(response.status_code, body)
        return response.json()

    def create(self, version: str, model_input: Mapping[str, Any]) -> Dict[str, Any]:
        self.logger.debug("Creating prediction for version %s", version)
        return self._request("POST", f"{self.api_base}/predictions", json={"version": version, "input": dict(model_input)})

    def get(self, prediction_id: str) -> Dict[str, Any]:
        return self._request("GET", f"{self.api_base}/predictions/{prediction_id}")
