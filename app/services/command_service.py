"""
Command channel service for cross-process site commands.

Broadcasts commands to every process of the cluster, dispatches inbound
commands to registered handlers and correlates responses with the job that
sent the command. Redis pub/sub carries messages between processes; an
in-process bus serves single node deployments and tests.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Set

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from app.core.config import Settings, get_settings
from src.domain.exceptions import TransportError
from src.domain.interfaces import CommandChannelInterface, CommandHandler

logger = logging.getLogger(__name__)

RESPONSE_TYPE = "response"
SHUTDOWN_GRACE_SECONDS = 5.0


class BaseCommandChannel(CommandChannelInterface):
    """
    Transport independent part of a command channel.

    Subclasses only move serialized messages; handler dispatch, self-message
    filtering and response correlation live here.
    """

    def __init__(self, node_id: str):
        self._node_id = node_id
        self._handlers: Dict[str, CommandHandler] = {}
        self._responses: Dict[str, List[Dict[str, Any]]] = {}
        self._waiters: Dict[str, asyncio.Event] = {}
        self._tasks: Set[asyncio.Task] = set()

    @property
    def node_id(self) -> str:
        return self._node_id

    def register_for_type(self, command_type: str, handler: CommandHandler) -> None:
        if command_type in self._handlers:
            logger.warning(f"Replacing handler for command type {command_type}")
        self._handlers[command_type] = handler

    async def broadcast(self, command: Dict[str, Any]) -> int:
        message = {**command, "origin": self._node_id}
        job_id = command.get("jobId")
        if job_id:
            # answers may arrive before anyone starts collecting them
            self._responses.setdefault(job_id, [])
            self._waiters.setdefault(job_id, asyncio.Event())

        try:
            peers = await self._publish(message)
        except Exception:
            if job_id:
                self._responses.pop(job_id, None)
                self._waiters.pop(job_id, None)
            raise
        logger.info(f"Broadcast {command.get('type')} for job {job_id} to {peers} peer(s)")
        return peers

    async def send_in_response_to(
        self, command: Dict[str, Any], payload: Dict[str, Any]
    ) -> None:
        message = {
            **payload,
            "type": RESPONSE_TYPE,
            "jobId": command.get("jobId"),
            "target": command.get("origin"),
            "origin": self._node_id,
        }
        await self._publish(message)

    async def collect_responses(
        self, job_id: str, expected: int, timeout: float
    ) -> List[Dict[str, Any]]:
        responses = self._responses.setdefault(job_id, [])
        event = self._waiters.setdefault(job_id, asyncio.Event())
        try:
            if expected > 0 and timeout > 0:
                loop = asyncio.get_running_loop()
                deadline = loop.time() + timeout
                while len(responses) < expected:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        break
                    event.clear()
                    try:
                        await asyncio.wait_for(event.wait(), remaining)
                    except asyncio.TimeoutError:
                        break
            if len(responses) < expected:
                logger.warning(
                    f"Job {job_id} received {len(responses)} of {expected} peer responses"
                )
            return list(responses)
        finally:
            self._responses.pop(job_id, None)
            self._waiters.pop(job_id, None)

    async def _on_message(self, raw: Any) -> None:
        """Decode one inbound message and route it."""
        try:
            message = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        except ValueError as e:
            logger.error(f"Dropping undecodable command message: {e}")
            return
        if not isinstance(message, dict):
            logger.error(f"Dropping command message that is not an object: {message!r}")
            return
        if message.get("origin") == self._node_id:
            return

        if message.get("type") == RESPONSE_TYPE:
            self._on_response(message)
            return

        handler = self._handlers.get(message.get("type"))
        if handler is None:
            logger.debug(f"No handler registered for command type {message.get('type')}")
            return
        self._spawn(self._run_handler(handler, message))

    def _on_response(self, message: Dict[str, Any]) -> None:
        if message.get("target") != self._node_id:
            return
        job_id = message.get("jobId")
        bucket = self._responses.get(job_id)
        if bucket is None:
            logger.debug(f"Ignoring late response for job {job_id} from {message.get('origin')}")
            return
        bucket.append(
            {
                "origin": message.get("origin"),
                "error": message.get("error"),
                "result": bool(message.get("result")),
            }
        )
        self._waiters[job_id].set()

    async def _run_handler(self, handler: CommandHandler, message: Dict[str, Any]) -> None:
        try:
            await handler(message)
        except Exception:
            logger.exception(f"Handler for command type {message.get('type')} failed")

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for in-flight handler tasks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _finish_tasks(self, grace: float = SHUTDOWN_GRACE_SECONDS) -> None:
        try:
            await asyncio.wait_for(self.drain(), grace)
        except asyncio.TimeoutError:
            logger.warning(f"Cancelling {len(self._tasks)} command handler(s) still running after {grace}s")
            await self._cancel_tasks()

    async def _cancel_tasks(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _publish(self, message: Dict[str, Any]) -> int:
        raise NotImplementedError


class LocalCommandBus:
    """In-process message bus connecting LocalCommandChannel instances."""

    def __init__(self):
        self._channels: List["LocalCommandChannel"] = []

    def attach(self, channel: "LocalCommandChannel") -> None:
        if channel not in self._channels:
            self._channels.append(channel)

    def detach(self, channel: "LocalCommandChannel") -> None:
        if channel in self._channels:
            self._channels.remove(channel)

    def publish(self, message: Dict[str, Any], sender: "LocalCommandChannel") -> int:
        payload = json.dumps(message)
        receivers = [channel for channel in self._channels if channel is not sender]
        for channel in receivers:
            channel._spawn(channel._on_message(payload))
        return len(receivers)


class LocalCommandChannel(BaseCommandChannel):
    """Command channel whose peers live in the same process."""

    def __init__(self, node_id: str, bus: Optional[LocalCommandBus] = None):
        super().__init__(node_id)
        self.bus = bus or LocalCommandBus()

    async def start(self) -> None:
        self.bus.attach(self)

    async def stop(self) -> None:
        self.bus.detach(self)
        await self._finish_tasks()

    async def _publish(self, message: Dict[str, Any]) -> int:
        return self.bus.publish(message, sender=self)


class RedisCommandChannel(BaseCommandChannel):
    """Command channel over a Redis pub/sub channel shared by the cluster."""

    def __init__(self, node_id: str, redis_url: str, channel_name: str):
        super().__init__(node_id)
        self.redis_url = redis_url
        self.channel_name = channel_name
        self._redis: Optional[aioredis.Redis] = None
        self._pubsub = None
        self._listener: Optional[asyncio.Task] = None

    async def start(self) -> None:
        try:
            self._redis = aioredis.from_url(self.redis_url, decode_responses=True)
            self._pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
            await self._pubsub.subscribe(self.channel_name)
        except RedisError as e:
            logger.error(f"Could not subscribe to {self.channel_name}: {e}")
            raise TransportError(
                f"Could not subscribe to command channel: {e}", backend="redis", operation="subscribe"
            ) from e

        self._listener = asyncio.get_running_loop().create_task(self._listen())
        logger.info(f"Node {self.node_id} listening for commands on {self.channel_name}")

    async def _listen(self) -> None:
        try:
            async for message in self._pubsub.listen():
                if message and message.get("type") == "message":
                    await self._on_message(message["data"])
        except asyncio.CancelledError:
            raise
        except RedisError as e:
            logger.error(f"Command listener on {self.channel_name} stopped: {e}")

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            await asyncio.gather(self._listener, return_exceptions=True)
            self._listener = None
        await self._finish_tasks()
        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self.channel_name)
            await self._pubsub.aclose()
            self._pubsub = None
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def _publish(self, message: Dict[str, Any]) -> int:
        if self._redis is None:
            raise TransportError("Command channel is not started", backend="redis", operation="publish")
        try:
            receivers = await self._redis.publish(self.channel_name, json.dumps(message))
        except RedisError as e:
            logger.error(f"Publishing to {self.channel_name} failed: {e}")
            raise TransportError(
                f"Publishing command failed: {e}", backend="redis", operation="publish"
            ) from e
        # this node is subscribed too
        return max(receivers - 1, 0)


def create_command_channel(
    settings: Optional[Settings] = None, bus: Optional[LocalCommandBus] = None
) -> BaseCommandChannel:
    """Build the command channel selected by ``COMMAND_CHANNEL_BACKEND``."""
    settings = settings or get_settings()
    if settings.COMMAND_CHANNEL_BACKEND == "redis":
        logger.info(f"Using Redis command channel at {settings.REDIS_URL}")
        return RedisCommandChannel(settings.NODE_ID, settings.REDIS_URL, settings.COMMAND_CHANNEL_NAME)
    logger.info("Using in-process command channel")
    return LocalCommandChannel(settings.NODE_ID, bus)
