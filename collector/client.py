"""
Collector Client

The single send routine shared by panic reports, stats uploads and
capture uploads.

DESIGN RULES (NON-NEGOTIABLE):
- HTTP POST only
- One best-effort attempt, no retries
- Never raise exceptions
- Log failures as warnings only
- Reply analysis never affects the caller

Status codes are observational: 401, 429 and 503 are logged, nothing
else happens.
"""

import logging
import socket
import urllib.error
import urllib.request
from typing import Callable, Dict, Optional

from app.core.config import Settings
from schemas.command import AgentRecord


logger = logging.getLogger(__name__)


# ============================================================
# ENDPOINTS
# ============================================================

PANICS_PATH = "/panics/create"
CPU_PROFILE_PATH = "/uploads/cpuprofile/create"
MEM_PROFILE_PATH = "/uploads/memprofile/create"
TRACE_PATH = "/uploads/trace/create"
STATS_PATH = "/uploads/statistics/create"

_STATUS_MESSAGES = {
    401: "wrong or invalid API token",
    429: "too many requests - you are being rate limited",
    503: "service not available",
}

ReplyHandler = Callable[[bytes], object]


class CollectorClient:
    """
    POSTs JSON bodies to the collector with the agent's identity headers.

    When a send asks for response analysis, the reply body is handed to
    `reply_handler` (the remote command dispatcher).
    """

    def __init__(
        self,
        settings: Settings,
        agent: Optional[AgentRecord] = None,
        reply_handler: Optional[ReplyHandler] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Agent settings (token, base url, timeout, no_post)
            agent: Identity sent in the agent-id header
            reply_handler: Receives reply bytes of analysed sends
        """
        self._settings = settings
        self.agent = agent or AgentRecord.for_host()
        self.reply_handler = reply_handler

    def url(self, path: str) -> str:
        return f"{self._settings.collector_base_url.rstrip('/')}{path}"

    def headers(self) -> Dict[str, str]:
        return {
            "X-deferid": self._settings.token,
            "Content-Type": "application/json",
            "User-Agent": self._settings.user_agent,
            "X-dpenv": self._settings.environment,
            "X-dpgroup": self._settings.app_group,
            "X-dpagentid": self.agent.name,
        }

    def post(self, body: bytes, url: str, analyse_response: bool = False) -> Optional[int]:
        """
        POST body to url.

        GUARANTEES:
        - Never raises exceptions
        - No request at all when no_post is set

        Returns:
            The collector's status code, or None when nothing was sent
            or the transport failed.
        """
        if self._settings.no_post:
            return None

        try:
            req = urllib.request.Request(
                url,
                data=body,
                headers=self.headers(),
                method="POST",
            )
            try:
                with urllib.request.urlopen(req, timeout=self._settings.request_timeout_seconds) as response:
                    status = response.status
                    reply = response.read()
            except urllib.error.HTTPError as e:
                # Error statuses still carry a readable reply
                status = e.code
                reply = e.read()
        except urllib.error.URLError as e:
            logger.warning(f"[COLLECTOR] Failed to POST to {url}: {e}")
            return None
        except socket.timeout:
            logger.warning(f"[COLLECTOR] Timeout posting to {url}")
            return None
        except Exception as e:
            logger.warning(f"[COLLECTOR] Unexpected error posting to {url}: {e}")
            return None

        self._observe_status(status)

        if analyse_response:
            self._analyse(reply)

        return status

    def _observe_status(self, status: int) -> None:
        message = _STATUS_MESSAGES.get(status)
        if message:
            logger.warning(f"[COLLECTOR] {message} (status {status})")

    def _analyse(self, reply: bytes) -> None:
        """Hand the reply to the dispatcher. Never throws."""
        if self.reply_handler is None:
            return
        try:
            self.reply_handler(reply)
        except Exception as e:
            logger.warning(f"[COLLECTOR] Failed to process collector reply: {e}")
