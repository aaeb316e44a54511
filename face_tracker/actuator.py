from __future__ import annotations

import logging
import threading
from typing import Optional

import httpx

from face_kit.errors import ActuatorDeliveryError
from face_kit.types import ActuatorCommand

from .slot import EMPTY, LatestFrameSlot

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 2.0


class HttpActuatorSink:
    """
    Sends pan/tilt angles to the servo endpoint as `GET <url>?angle1=..&angle2=..`.

    `send` only queues the command; a background thread does the HTTP call so
    a slow or unreachable servo never stalls frame processing. While a request
    is in flight only the newest command is kept. Failures are logged and
    dropped; there is no retry.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("base_url must be a non-empty string")
        if timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")

        self.base_url = base_url.strip()
        self.timeout_s = timeout_s
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout_s)

        self._slot: LatestFrameSlot[ActuatorCommand] = LatestFrameSlot()
        self.delivered = 0
        self.failed = 0
        self.last_response: Optional[str] = None

        self._thread = threading.Thread(target=self._run, name="HttpActuatorSink", daemon=True)
        self._thread.start()

    def deliver(self, command: ActuatorCommand) -> str:
        """Blocking delivery; returns the plain-text body."""
        try:
            response = self._client.get(self.base_url, params=command.as_params(), timeout=self.timeout_s)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ActuatorDeliveryError(
                f"Could not deliver angles ({command.angle1}, {command.angle2}) to {self.base_url}: {exc}"
            ) from exc
        return response.text

    def send(self, command: ActuatorCommand) -> bool:
        """Queue `command` for delivery; returns False after close()."""
        return self._slot.put(command)

    __call__ = send

    def _run(self) -> None:
        while True:
            command = self._slot.take()
            if command is EMPTY:
                break
            try:
                body = self.deliver(command)
            except ActuatorDeliveryError as exc:
                self.failed += 1
                logger.warning("%s", exc)
                continue
            except Exception:
                self.failed += 1
                logger.exception("Unexpected failure delivering angles (%d, %d)", command.angle1, command.angle2)
                continue
            self.delivered += 1
            self.last_response = body
            logger.debug("Actuator accepted (%d, %d): %r", command.angle1, command.angle2, body)

    @property
    def dropped(self) -> int:
        return self._slot.dropped

    def close(self, timeout: Optional[float] = None, *, drain: bool = False) -> None:
        """
        Stop the delivery thread and release the HTTP client (if owned).

        `drain` still delivers a command that is waiting; `timeout` defaults to
        one request timeout.
        """

        self._slot.close(discard_pending=not drain)
        self._thread.join(timeout=self.timeout_s if timeout is None else timeout)
        if self._thread.is_alive():
            logger.warning("Actuator delivery still in flight at close; abandoning it")
        if self._owns_client:
            self._client.close()
        logger.info(
            "Actuator sink closed: delivered=%d failed=%d dropped=%d",
            self.delivered,
            self.failed,
            self.dropped,
        )

    def __enter__(self) -> "HttpActuatorSink":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
