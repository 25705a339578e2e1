"""
Topic fan-out for live match updates.

Viewers subscribe to ``match:<id>`` for one scoreboard or ``matches`` for
the live list. Each subscriber owns a bounded queue; a viewer that falls
behind is dropped instead of stalling the publisher. ``RedisBroadcaster``
relays messages through a Redis channel so every API worker sees every
update.
"""

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.metrics import BROADCAST_COUNT, BROADCAST_DROPPED_COUNT

logger = logging.getLogger(__name__)

ALL_MATCHES_TOPIC = "matches"

Listener = Callable[[str, Dict[str, Any]], Awaitable[None]]


def match_topic(match_id: str) -> str:
    return f"match:{match_id}"


class Subscription:
    """A viewer's queue on one topic; ``None`` in the queue means it was dropped"""

    def __init__(self, topic: str, maxsize: int):
        self.topic = topic
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = False

    async def get(self) -> Optional[Dict[str, Any]]:
        return await self.queue.get()

    def _drop(self) -> None:
        self.dropped = True
        # make room for the sentinel so the reader wakes up
        while not self.queue.empty():
            self.queue.get_nowait()
        self.queue.put_nowait(None)


class Broadcaster:
    """In-process publish/subscribe"""

    def __init__(self, queue_size: Optional[int] = None):
        self.queue_size = queue_size or settings.subscriber_queue_size
        self._subscribers: Dict[str, Set[Subscription]] = defaultdict(set)
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        for subs in list(self._subscribers.values()):
            for sub in list(subs):
                sub._drop()
        self._subscribers.clear()

    def subscribe(self, topic: str) -> Subscription:
        sub = Subscription(topic, self.queue_size)
        self._subscribers[topic].add(sub)
        logger.debug(f"Subscribed to {topic} ({len(self._subscribers[topic])} subscribers)")
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.topic)
        if subs is None:
            return
        subs.discard(sub)
        if not subs:
            del self._subscribers[sub.topic]

    def add_listener(self, topic: str, handler: Listener) -> None:
        """Register an in-process handler called for every message on ``topic``"""
        self._listeners[topic].append(handler)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    async def publish(self, topic: str, message: Dict[str, Any]) -> None:
        await self._fan_out(topic, message)

    async def _fan_out(self, topic: str, message: Dict[str, Any]) -> None:
        BROADCAST_COUNT.labels(topic=topic.split(":", 1)[0]).inc()

        for sub in list(self._subscribers.get(topic, ())):
            try:
                sub.queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning(f"Dropping slow subscriber on {topic}")
                BROADCAST_DROPPED_COUNT.inc()
                self.unsubscribe(sub)
                sub._drop()

        for handler in list(self._listeners.get(topic, ())):
            try:
                await handler(topic, message)
            except Exception as e:
                logger.error(f"Broadcast listener failed on {topic}: {e}")


class RedisBroadcaster(Broadcaster):
    """Broadcaster that routes every message through a Redis pub/sub channel.

    The listener task resubscribes with exponential backoff when the Redis
    connection drops, so a restart of Redis only pauses delivery.
    """

    def __init__(self, redis_client: redis.Redis, channel: Optional[str] = None,
                 queue_size: Optional[int] = None, reconnect_delay: Optional[float] = None):
        super().__init__(queue_size)
        self.redis = redis_client
        self.channel = channel or settings.broadcast_channel
        if reconnect_delay is None:
            reconnect_delay = settings.broadcast_reconnect_delay
        self.reconnect_delay = reconnect_delay
        self._task: Optional[asyncio.Task] = None
        self._pubsub = None

    async def start(self) -> None:
        await self._subscribe()
        self._task = asyncio.create_task(self._listen())
        self._task.add_done_callback(self._listener_done)
        logger.info(f"Redis broadcaster listening on {self.channel}")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Redis broadcast listener had failed before shutdown: {e}")
            self._task = None
        await self._close_pubsub()
        await super().stop()

    async def publish(self, topic: str, message: Dict[str, Any]) -> None:
        envelope = json.dumps({"topic": topic, "message": message}, default=str)
        try:
            await self.redis.publish(self.channel, envelope)
        except RedisError as e:
            logger.error(f"Redis publish failed, delivering locally only: {e}")
            await self._fan_out(topic, message)

    async def _subscribe(self) -> None:
        self._pubsub = self.redis.pubsub()
        await self._pubsub.subscribe(self.channel)

    async def _close_pubsub(self) -> None:
        if self._pubsub is None:
            return
        pubsub, self._pubsub = self._pubsub, None
        try:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()
        except (RedisError, OSError) as e:
            logger.warning(f"Error closing Redis subscription on {self.channel}: {e}")

    async def _listen(self) -> None:
        delay = self.reconnect_delay
        while True:
            try:
                if self._pubsub is None:
                    await self._subscribe()
                    logger.info(f"Redis broadcaster resubscribed to {self.channel}")
                    delay = self.reconnect_delay
                await self._relay()
                logger.warning(f"Redis subscription on {self.channel} ended, resubscribing")
            except (RedisError, OSError) as e:
                logger.error(f"Redis broadcast listener lost its connection: {e}; retrying in {delay}s")
            await self._close_pubsub()
            await asyncio.sleep(delay)
            delay = min(delay * 2, settings.broadcast_reconnect_max_delay)

    async def _relay(self) -> None:
        async for item in self._pubsub.listen():
            if item.get("type") != "message":
                continue
            try:
                envelope = json.loads(item["data"])
                topic = envelope["topic"]
                message = envelope["message"]
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Ignoring malformed broadcast envelope: {e}")
                continue
            await self._fan_out(topic, message)

    def _listener_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Redis broadcast listener stopped, viewers on this worker get no updates: {error!r}")


def create_broadcaster(redis_client: Optional[redis.Redis] = None) -> Broadcaster:
    """Build the broadcaster selected by ``BROADCAST_BACKEND``"""
    if settings.broadcast_backend == "redis":
        if redis_client is None:
            raise ValueError("Redis broadcaster needs a Redis client")
        return RedisBroadcaster(redis_client)
    return Broadcaster()
