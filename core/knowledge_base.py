"""Trigger for the downstream knowledge-base refresh job."""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional, Sequence

import requests

from core.article_generator import resolve_api_base_url
from utils.logger import setup_logger


class KnowledgeBaseRefresher:
    """POSTs to the refresh cron endpoint. Failures are logged, never raised."""

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        *,
        session: Optional[requests.Session] = None,
        environ: Optional[Mapping[str, str]] = None,
        logger=None,
    ) -> None:
        self.config = dict(config or {})
        kb_cfg = self.config.get("knowledge_base", {})
        self.enabled = bool(kb_cfg.get("enabled", True))
        self.endpoint = str(kb_cfg.get("endpoint", "/api/cron/update-knowledge-base"))
        self.timeout = kb_cfg.get("request_timeout", 120)
        self.environ = os.environ if environ is None else environ
        self.session = session or requests.Session()
        self.logger = logger or setup_logger(self.__class__.__name__)

    def refresh(self, slugs: Optional[Sequence[str]] = None) -> bool:
        if not self.enabled:
            self.logger.info("Knowledge base refresh disabled; skipping.")
            return False

        url = resolve_api_base_url(self.environ, self.config) + self.endpoint
        headers = {"Content-Type": "application/json"}
        secret = (self.environ.get("CRON_SECRET") or "").strip()
        if secret:
            headers["Authorization"] = f"Bearer {secret}"
        body = {"slugs": list(slugs)} if slugs else {}

        scope = f"{len(slugs)} new article(s)" if slugs else "all content"
        self.logger.info("Refreshing knowledge base for %s", scope)
        try:
            response = self.session.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            self.logger.error("Knowledge base refresh failed: %s", exc)
            return False
        if not 200 <= response.status_code < 300:
            self.logger.error("Knowledge base refresh returned HTTP %s: %s", response.status_code, response.text[:500])
            return False
        return True
