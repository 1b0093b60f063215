"""HTTP trigger: serves the application's `[[trigger.http]]` routes."""

from __future__ import annotations

import asyncio
import ssl
from collections.abc import Iterable
from dataclasses import dataclass
from http import HTTPStatus
from pathlib import Path
from typing import Any, ClassVar

from aiohttp import web

from ..constants import DEFAULT_HTTP_LISTEN
from ..models import TriggerError
from ..validation import ConfigField, ConfigItems
from .base import TriggerCapability

__all__ = [
    "HttpTrigger",
    "Route",
    "RouteTable",
    "join_route",
    "parse_cgi_response",
    "parse_listen_address",
]

WILDCARD_SUFFIX = "/..."

# Hop-by-hop or computed headers a component can't set
_IGNORED_RESPONSE_HEADERS = frozenset({"status", "content-length", "transfer-encoding", "connection"})


def parse_listen_address(value: str) -> tuple[str, int]:
    """Split a `host:port` listen address.

    Raises:
        TriggerError: if the address is malformed
    """
    host, sep, port = value.rpartition(":")
    if not sep or not host or not port.isdigit():
        msg = f"Invalid listen address '{value}', expected HOST:PORT"
        raise TriggerError(msg)
    return host.strip("[]"), int(port)


def join_route(base: str, route: str) -> str:
    """Prefix `route` with the application base path."""
    base = "/" + base.strip("/")
    route = "/" + route.lstrip("/")
    joined = route if base == "/" else base + route
    if len(joined) > 1:
        joined = joined.rstrip("/") or "/"
    return joined


@dataclass(frozen=True)
class Route:
    """A route pattern bound to a component.

    Patterns ending with `/...` match every path below their prefix.
    """

    pattern: str
    component: str

    @property
    def wildcard(self) -> bool:
        """Return True for prefix patterns."""
        return self.pattern.endswith(WILDCARD_SUFFIX)

    @property
    def prefix(self) -> str:
        """The fixed part of the pattern."""
        return self.pattern[: -len(WILDCARD_SUFFIX)] if self.wildcard else self.pattern

    @property
    def display(self) -> str:
        """Pattern as shown in the `Available Routes` listing."""
        return f"{self.prefix or '/'} (wildcard)" if self.wildcard else self.pattern

    def matches(self, path: str) -> bool:
        """Return True if `path` is served by this route."""
        if self.wildcard:
            return path == self.prefix or path.startswith(self.prefix + "/")
        return path == self.pattern

    def path_info(self, path: str) -> str:
        """Return the part of `path` below the matched prefix."""
        if not self.wildcard:
            return ""
        return path[len(self.prefix) :]


class RouteTable:
    """Routes of an application, matched most specific first."""

    def __init__(self, routes: Iterable[Route]) -> None:
        self.routes = list(routes)

    @classmethod
    def from_entries(cls, base: str, entries: Iterable[dict[str, Any]]) -> RouteTable:
        """Build the table from `[[trigger.http]]` entries."""
        return cls(Route(join_route(base, entry["route"]), entry["component"]) for entry in entries)

    def duplicates(self) -> list[str]:
        """Return the patterns declared more than once."""
        seen: set[str] = set()
        dupes = []
        for route in self.routes:
            if route.pattern in seen and route.pattern not in dupes:
                dupes.append(route.pattern)
            seen.add(route.pattern)
        return dupes

    def match(self, path: str) -> Route | None:
        """Return the route serving `path`.

        Exact routes win over wildcards; among wildcards the longest prefix wins.
        """
        for route in self.routes:
            if not route.wildcard and route.matches(path):
                return route
        wildcards = [route for route in self.routes if route.wildcard and route.matches(path)]
        if not wildcards:
            return None
        return max(wildcards, key=lambda route: len(route.prefix))


def parse_cgi_response(output: bytes) -> tuple[int, dict[str, str], bytes]:
    """Split a CGI style component response into (status, headers, body).

    Output without a header block is returned as the body of a 200 response.
    """
    separators = [(output.find(sep), sep) for sep in (b"\r\n\r\n", b"\n\n")]
    found = [(index, sep) for index, sep in separators if index >= 0]
    if not found:
        return HTTPStatus.OK.value, {}, output
    index, sep = min(found)
    head, body = output[:index], output[index + len(sep) :]

    status = HTTPStatus.OK.value
    headers: dict[str, str] = {}
    for line in head.decode("latin-1").splitlines():
        name, colon, value = line.partition(":")
        if not colon:
            continue
        name, value = name.strip(), value.strip()
        if name.lower() == "status":
            code = value.split(maxsplit=1)[0] if value else ""
            if code.isdigit():
                status = int(code)
        elif name.lower() == "location" and status == HTTPStatus.OK:
            headers[name] = value
            status = HTTPStatus.FOUND.value
        elif name.lower() not in _IGNORED_RESPONSE_HEADERS:
            headers[name] = value
    return status, headers, body


class HttpTrigger(TriggerCapability):
    """Serves HTTP requests, running the component bound to the requested route."""

    trigger_type = "http"
    about = "Run the HTTP trigger executor."
    config_schema: ClassVar[ConfigItems] = ConfigItems(
        ConfigField(
            "listen",
            str,
            default=DEFAULT_HTTP_LISTEN,
            env="SPIN_HTTP_LISTEN_ADDR",
            description="IP address and port to listen on",
        ),
        ConfigField("tls_cert", Path, env="SPIN_TLS_CERT", description="The path to the certificate to use for https"),
        ConfigField("tls_key", Path, env="SPIN_TLS_KEY", description="The path to the certificate key to use for https"),
    )
    app_config_schema: ClassVar[ConfigItems] = ConfigItems(
        ConfigField("base", str, default="/", description="Base path prefixed to every route"),
    )
    trigger_schema: ClassVar[ConfigItems] = ConfigItems(
        ConfigField("route", str, required=True, description="Route pattern, `/...` suffix for wildcards"),
        ConfigField("component", str, required=True, description="Component handling the route"),
        ConfigField("executor", dict),
    )

    @property
    def routes(self) -> RouteTable:
        """The application routes, base path applied."""
        return RouteTable.from_entries(self.app_config["base"], self.entries)

    @property
    def scheme(self) -> str:
        """URL scheme served."""
        return "https" if self.config.get("tls_cert") else "http"

    def validate(self) -> list[str]:
        errors = super().validate()
        if errors:
            return errors
        if bool(self.config.get("tls_cert")) != bool(self.config.get("tls_key")):
            errors.append("--tls-cert and --tls-key must be used together")
        try:
            parse_listen_address(self.config["listen"])
        except TriggerError as e:
            errors.append(str(e))
        for pattern in self.routes.duplicates():
            self.log.warning("Route %s is declared more than once, the first declaration wins", pattern)
        return errors

    def request_env(self, request: web.BaseRequest, route: Route) -> dict[str, str]:
        """Return the CGI environment describing `request`."""
        env = {
            "REQUEST_METHOD": request.method,
            "PATH_INFO": route.path_info(request.path),
            "QUERY_STRING": request.query_string,
            "SERVER_PROTOCOL": f"HTTP/{request.version.major}.{request.version.minor}",
            "SPIN_FULL_URL": str(request.url),
            "SPIN_PATH_INFO": route.path_info(request.path),
            "SPIN_MATCHED_ROUTE": route.pattern,
            "SPIN_COMPONENT_ROUTE": route.prefix,
            "SPIN_BASE_PATH": self.app_config["base"],
            "SPIN_CLIENT_ADDR": request.remote or "",
        }
        if request.content_type:
            env["CONTENT_TYPE"] = request.content_type
        if request.content_length is not None:
            env["CONTENT_LENGTH"] = str(request.content_length)
        for name, value in request.headers.items():
            env["HTTP_" + name.upper().replace("-", "_")] = value
        return env

    async def handle(self, request: web.Request) -> web.Response:
        """Serve one request."""
        route = self.routes.match(request.path)
        if route is None:
            return web.Response(status=HTTPStatus.NOT_FOUND.value)

        payload = await request.read()
        try:
            output = await self.runner.invoke(route.component, payload, self.request_env(request, route))
        except TriggerError as e:
            self.log.error("%s %s: %s", request.method, request.path, e)
            return web.Response(status=HTTPStatus.INTERNAL_SERVER_ERROR.value)
        if not output.ok:
            self.log.error("Component %s exited with status %d", route.component, output.status)
            return web.Response(status=HTTPStatus.INTERNAL_SERVER_ERROR.value)

        status, headers, body = parse_cgi_response(output.stdout)
        self.log.info("%s %s -> %s %d", request.method, request.path, route.component, status)
        return web.Response(status=status, headers=headers, body=body)

    def make_app(self) -> web.Application:
        """Return the aiohttp application dispatching every path to `handle`."""
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self.handle)
        return app

    def _ssl_context(self) -> ssl.SSLContext | None:
        if not self.config.get("tls_cert"):
            return None
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        try:
            context.load_cert_chain(self.config["tls_cert"], self.config["tls_key"])
        except (OSError, ssl.SSLError) as e:
            msg = f"Unable to load TLS certificate {self.config['tls_cert']}"
            raise TriggerError(msg) from e
        return context

    def print_routes(self, host: str, port: int) -> None:
        """Print the server address and the application routes."""
        origin = f"{self.scheme}://{host}:{port}"
        print(f"\nServing {origin}")
        print("Available Routes:")
        for route in self.routes.routes:
            print(f"  {route.component}: {origin}{route.display}")
            description = self.app.components[route.component].description
            if description:
                print(f"    {description}")

    async def run(self, stop: asyncio.Event) -> None:
        host, port = parse_listen_address(self.config["listen"])
        ssl_context = self._ssl_context()
        runner = web.AppRunner(self.make_app())
        await runner.setup()
        try:
            site = web.TCPSite(runner, host, port, ssl_context=ssl_context)
            await site.start()
            # port 0 binds an ephemeral port
            bound_port = runner.addresses[0][1] if runner.addresses else port
            self.print_routes(host, bound_port)
            await stop.wait()
        finally:
            await runner.cleanup()
