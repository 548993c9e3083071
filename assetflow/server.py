"""Development server with live reload.

Serves the destination root over HTTP with aiohttp.  Every HTML response
gets a small client script that opens a websocket to ``/__livereload``;
:meth:`DevServer.reload` pushes a ``reload`` message to every connected
client, which then refreshes the page.  The set of connected sockets is the
only long-lived mutable state in the pipeline.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path

from aiohttp import WSMsgType, web

from assetflow.config import ServerConfig
from assetflow.utils import console

RELOAD_PATH = "/__livereload"

RELOAD_SCRIPT = (
    "<script>(function(){"
    "var p=location.protocol==='https:'?'wss://':'ws://';"
    f"var ws=new WebSocket(p+location.host+'{RELOAD_PATH}');"
    "ws.onmessage=function(e){if(e.data==='reload'){location.reload();}};"
    "})();</script>"
)


def inject_reload_script(html: str) -> str:
    """Insert the reload client before ``</body>``, or append it."""
    index = html.lower().rfind("</body>")
    if index == -1:
        return html + RELOAD_SCRIPT
    return html[:index] + RELOAD_SCRIPT + html[index:]


class DevServer:
    """Static file server for the destination root with a reload channel.

    Attributes:
        root: Directory being served.
        settings: Host/port settings.  Port ``0`` binds an ephemeral port;
            the bound address is available from :attr:`url` after
            :meth:`start`.
    """

    def __init__(self, root: Path, settings: ServerConfig | None = None) -> None:
        self.root = Path(root)
        self.settings = settings or ServerConfig()
        self._clients: set[web.WebSocketResponse] = set()
        self._runner: web.AppRunner | None = None
        self._port: int | None = None

    # -- Lifecycle -------------------------------------------------------

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get(RELOAD_PATH, self._handle_websocket)
        app.router.add_get("/{tail:.*}", self._handle_file)
        return app

    async def start(self) -> str:
        """Bind and start serving.  Returns the server URL."""
        if self._runner is not None:
            return self.url
        runner = web.AppRunner(self.create_app(), access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self.settings.host, self.settings.port)
        await site.start()
        self._runner = runner

        self._port = self.settings.port
        for address in runner.addresses:
            if isinstance(address, tuple) and len(address) >= 2:
                self._port = address[1]
                break

        console.print(f"  Serving [bold]{self.root}[/bold] at [link={self.url}]{self.url}[/link]")
        return self.url

    async def stop(self) -> None:
        """Close client sockets and shut the server down."""
        for ws in list(self._clients):
            await ws.close()
        self._clients.clear()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    @property
    def running(self) -> bool:
        return self._runner is not None

    @property
    def url(self) -> str:
        port = self._port if self._port is not None else self.settings.port
        return f"http://{self.settings.host}:{port}/"

    @property
    def client_count(self) -> int:
        return len(self._clients)

    # -- Reload ----------------------------------------------------------

    async def reload(self) -> int:
        """Tell every connected browser to refresh.  Returns how many were notified."""
        notified = 0
        for ws in list(self._clients):
            if ws.closed:
                self._clients.discard(ws)
                continue
            try:
                await ws.send_str("reload")
            except ConnectionError:
                self._clients.discard(ws)
                continue
            notified += 1
        return notified

    # -- Handlers --------------------------------------------------------

    async def _handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse(heartbeat=30)
        await ws.prepare(request)
        self._clients.add(ws)
        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    break
        finally:
            self._clients.discard(ws)
        return ws

    def resolve(self, request_path: str) -> Path | None:
        """Map a URL path to a file under :attr:`root`, or ``None``."""
        root = self.root.resolve()
        candidate = (root / request_path.lstrip("/")).resolve()
        if candidate != root and root not in candidate.parents:
            return None
        if candidate.is_dir():
            candidate = candidate / "index.html"
        elif not candidate.exists() and not candidate.suffix:
            candidate = candidate.with_suffix(".html")
        if not candidate.is_file():
            return None
        return candidate

    async def _handle_file(self, request: web.Request) -> web.StreamResponse:
        path = self.resolve(request.match_info.get("tail", ""))
        if path is None:
            raise web.HTTPNotFound()

        if path.suffix.lower() in (".html", ".htm"):
            html = path.read_text(encoding="utf-8", errors="replace")
            return web.Response(
                text=inject_reload_script(html),
                content_type="text/html",
                headers={"Cache-Control": "no-cache"},
            )

        content_type, _encoding = mimetypes.guess_type(path.name)
        return web.FileResponse(
            path,
            headers={
                "Cache-Control": "no-cache",
                "Content-Type": content_type or "application/octet-stream",
            },
        )
