"""
Remote Command Dispatcher

Decodes collector replies and launches each newly seen capture command
exactly once.

FLOW:
reply bytes -> CollectorResponse -> for each Command:
    unknown kind      -> log, skip
    already claimed   -> skip
    newly claimed     -> capture on its own thread -> upload

DESIGN RULES:
- Never raise into the send path that delivered the reply
- Capture tasks are independent daemon threads, never joined
"""

import logging
import threading
from typing import Callable, Dict, Tuple

from pydantic import ValidationError

from collector.client import CollectorClient, CPU_PROFILE_PATH, MEM_PROFILE_PATH, TRACE_PATH
from commands.capture import ProfileCapturer
from commands.registry import CommandRegistry
from schemas.command import AgentRecord, Command, CommandType, CollectorResponse
from schemas.report import ProfileUpload


logger = logging.getLogger(__name__)


class RemoteCommandDispatcher:
    """
    Turns collector replies into capture tasks.
    """

    def __init__(
        self,
        client: CollectorClient,
        registry: CommandRegistry,
        capturer: ProfileCapturer,
    ):
        """
        Args:
            client: Client used to upload capture results
            registry: Claimed command ids
            capturer: Capture primitives
        """
        self._client = client
        self._registry = registry
        self._capturer = capturer
        self._routes: Dict[CommandType, Tuple[Callable[[], bytes], str]] = {
            CommandType.TRACE: (capturer.trace, TRACE_PATH),
            CommandType.CPU_PROFILE: (capturer.cpu_profile, CPU_PROFILE_PATH),
            CommandType.MEM_PROFILE: (capturer.mem_profile, MEM_PROFILE_PATH),
        }

    def handle_reply(self, reply: bytes) -> int:
        """
        Decode a collector reply and dispatch its commands.

        Returns:
            Number of capture tasks launched.
        """
        try:
            response = CollectorResponse.model_validate_json(reply)
        except ValidationError as e:
            logger.warning(f"[COMMANDS] Could not decode collector reply: {e}")
            return 0

        launched = 0
        for command in response.commands:
            if self.dispatch(command, response.agent):
                launched += 1
        return launched

    def dispatch(self, command: Command, agent: AgentRecord) -> bool:
        """Launch command unless its kind is unknown or its id is claimed."""
        route = self._routes.get(command.kind)
        if route is None:
            logger.warning(f"[COMMANDS] Unknown command {command.type!r} (id {command.id})")
            return False

        if not self._registry.claim(command.id):
            return False

        capture, path = route
        logger.info(f"[COMMANDS] Running {command.kind.value} for command {command.id} (agent {agent.name})")
        threading.Thread(
            target=self.run_capture,
            args=(command.id, capture, path),
            name=f"deferwatch-command-{command.id}",
            daemon=True,
        ).start()
        return True

    def run_capture(self, command_id: int, capture: Callable[[], bytes], path: str) -> None:
        """Capture and upload. Never throws."""
        try:
            out = capture()
        except Exception as e:
            logger.warning(f"[COMMANDS] Capture for command {command_id} failed: {e}")
            return

        upload = ProfileUpload(
            command_id=command_id,
            out=out,
            pkg=self._capturer.package(),
        )
        self._client.post(upload.to_json(), self._client.url(path), analyse_response=False)
