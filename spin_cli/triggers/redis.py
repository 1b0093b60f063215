"""Redis trigger: feeds messages published on channels to components.

Talks RESP (the Redis serialization protocol) directly over asyncio streams;
only AUTH, SELECT and SUBSCRIBE are needed.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, ClassVar
from urllib.parse import unquote, urlsplit

from ..constants import DEFAULT_REDIS_PORT
from ..models import TriggerError
from ..validation import ConfigField, ConfigItems
from .base import TriggerCapability

__all__ = [
    "RedisAddress",
    "RedisTrigger",
    "RespError",
    "encode_command",
    "parse_redis_url",
    "read_reply",
]

CRLF = b"\r\n"


class RespError(TriggerError):
    """The Redis server answered with an error reply."""


def encode_command(*args: str | bytes) -> bytes:
    """Encode a command as a RESP array of bulk strings."""
    parts = [b"*%d\r\n" % len(args)]
    for arg in args:
        data = arg.encode() if isinstance(arg, str) else arg
        parts.append(b"$%d\r\n%s\r\n" % (len(data), data))
    return b"".join(parts)


async def read_reply(reader: asyncio.StreamReader) -> Any:  # noqa: ANN401
    """Read one RESP reply.

    Returns:
        str for simple strings, int for integers, bytes (or None) for bulk
        strings and a list for arrays

    Raises:
        RespError: for error replies
        TriggerError: if the connection is closed or the reply is malformed
    """
    line = await reader.readline()
    if not line:
        msg = "Redis server closed the connection"
        raise TriggerError(msg)
    if not line.endswith(CRLF):
        msg = f"Malformed reply from Redis server: {line!r}"
        raise TriggerError(msg)
    kind, payload = line[:1], line[1:-2]

    if kind == b"+":
        return payload.decode()
    if kind == b"-":
        raise RespError(payload.decode())
    if kind == b":":
        return int(payload)
    if kind == b"$":
        size = int(payload)
        if size < 0:
            return None
        data = await reader.readexactly(size + len(CRLF))
        return data[:-2]
    if kind == b"*":
        count = int(payload)
        if count < 0:
            return None
        return [await read_reply(reader) for _ in range(count)]
    msg = f"Unexpected reply type {kind!r} from Redis server"
    raise TriggerError(msg)


@dataclass(frozen=True)
class RedisAddress:
    """A parsed `redis://` URL."""

    host: str
    port: int = DEFAULT_REDIS_PORT
    username: str | None = None
    password: str | None = None
    db: int = 0
    tls: bool = False


def parse_redis_url(url: str) -> RedisAddress:
    """Parse `redis://[user:password@]host[:port][/db]` (or `rediss://` for TLS).

    Raises:
        TriggerError: if the URL is not a Redis URL
    """
    parts = urlsplit(url)
    if parts.scheme not in ("redis", "rediss") or not parts.hostname:
        msg = f"Invalid Redis address '{url}', expected redis://HOST[:PORT]"
        raise TriggerError(msg)
    db_path = parts.path.strip("/")
    try:
        port = parts.port or DEFAULT_REDIS_PORT
        db = int(db_path) if db_path else 0
    except ValueError as e:
        msg = f"Invalid Redis address '{url}'"
        raise TriggerError(msg) from e
    return RedisAddress(
        host=parts.hostname,
        port=port,
        username=unquote(parts.username) if parts.username else None,
        password=unquote(parts.password) if parts.password else None,
        db=db,
        tls=parts.scheme == "rediss",
    )


class RedisTrigger(TriggerCapability):
    """Subscribes to the channels of `[[trigger.redis]]` entries."""

    trigger_type = "redis"
    about = "Run the Redis trigger executor."
    app_config_schema: ClassVar[ConfigItems] = ConfigItems(
        ConfigField("address", str, description="Default Redis server URL (eg: redis://localhost:6379)"),
    )
    trigger_schema: ClassVar[ConfigItems] = ConfigItems(
        ConfigField("channel", str, required=True, description="Channel to subscribe to"),
        ConfigField("component", str, required=True, description="Component receiving the messages"),
        ConfigField("address", str, description="Redis server URL, overrides the application default"),
        ConfigField("executor", dict),
    )

    def validate(self) -> list[str]:
        errors = super().validate()
        if errors:
            return errors
        default_address = self.app_config.get("address")
        for index, entry in enumerate(self.entries):
            address = entry.get("address") or default_address
            if not address:
                errors.append(f"[trigger.redis][{index}] No Redis address, set [application.trigger.redis] address")
                continue
            try:
                parse_redis_url(address)
            except TriggerError as e:
                errors.append(f"[trigger.redis][{index}] {e}")
        return errors

    def subscriptions(self) -> dict[str, dict[str, list[str]]]:
        """Return the components to run, by server address then by channel."""
        default_address = self.app_config.get("address")
        result: dict[str, dict[str, list[str]]] = defaultdict(lambda: defaultdict(list))
        for entry in self.entries:
            result[entry.get("address") or default_address][entry["channel"]].append(entry["component"])
        return {address: dict(channels) for address, channels in result.items()}

    async def dispatch(self, channel: str, message: bytes, components: list[str]) -> None:
        """Run each component subscribed to `channel` with `message` as input.

        Component failures are logged; they don't stop the subscription.
        """
        for component_id in components:
            try:
                output = await self.runner.invoke(component_id, message, {"SPIN_REDIS_CHANNEL": channel})
            except TriggerError as e:
                self.log.error("Unable to handle message on %s: %s", channel, e)
                continue
            if not output.ok:
                self.log.error("Component %s exited with status %d handling a message on %s", component_id, output.status, channel)

    async def _command(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, *args: str) -> Any:  # noqa: ANN401
        writer.write(encode_command(*args))
        await writer.drain()
        return await read_reply(reader)

    async def consume(self, address: str, channels: dict[str, list[str]]) -> None:
        """Subscribe to `channels` on `address` and dispatch messages until cancelled.

        Raises:
            TriggerError: if the connection fails or is closed by the server
        """
        target = parse_redis_url(address)
        try:
            reader, writer = await asyncio.open_connection(target.host, target.port, ssl=target.tls or None)
        except OSError as e:
            msg = f"Unable to connect to Redis server at {address}"
            raise TriggerError(msg) from e

        try:
            if target.password:
                credentials = [target.username, target.password] if target.username else [target.password]
                await self._command(reader, writer, "AUTH", *credentials)
            if target.db:
                await self._command(reader, writer, "SELECT", str(target.db))
            writer.write(encode_command("SUBSCRIBE", *channels))
            await writer.drain()
            print(f"Listening on {address} for channels: {', '.join(channels)}")

            while True:
                reply = await read_reply(reader)
                if not isinstance(reply, list) or len(reply) < 3:
                    continue
                kind, channel = reply[0], reply[1].decode()
                if kind == b"subscribe":
                    self.log.debug("Subscribed to %s", channel)
                elif kind == b"message":
                    await self.dispatch(channel, reply[2], channels.get(channel, []))
        finally:
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()

    async def run(self, stop: asyncio.Event) -> None:
        consumers = [asyncio.create_task(self.consume(address, channels)) for address, channels in self.subscriptions().items()]
        stopper = asyncio.create_task(stop.wait())
        tasks = [*consumers, stopper]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        for task in done:
            if task is not stopper and not task.cancelled() and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]
