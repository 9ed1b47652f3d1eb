"""Local dev server management for crawls against a freshly started site."""

from __future__ import annotations

import asyncio
import os
import signal
from typing import List, Optional

import httpx

from ..logging import get_logger

POLL_INTERVAL = 1.0
STARTUP_TIMEOUT = 10.0

logger = get_logger("links.server")


class ServerStartError(RuntimeError):
    """Raised when the dev server never answers on its host."""


async def poll_url(
    url: str,
    timeout: float = STARTUP_TIMEOUT,
    *,
    interval: float = POLL_INTERVAL,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """Request ``url`` until it answers with a 2xx status or ``timeout`` elapses."""
    loop = asyncio.get_running_loop()
    start = loop.time()
    async with httpx.AsyncClient(transport=transport, follow_redirects=True) as client:
        while True:
            try:
                response = await client.get(url)
                if not response.is_success:
                    raise httpx.HTTPStatusError(
                        f"Failed to fetch {url}: [{response.status_code}] {response.reason_phrase}",
                        request=response.request,
                        response=response,
                    )
                return
            except httpx.HTTPError as exc:
                if loop.time() - start > timeout:
                    raise ServerStartError(f"Timeout waiting for {url}: {exc}") from exc
            await asyncio.sleep(interval)


class DevServer:
    """Runs ``command`` in a shell for the duration of an ``async with`` block.

    Output lines are forwarded to the log prefixed with ``server:``. The
    process runs in its own session so :meth:`stop` can kill the whole group.
    """

    def __init__(self, command: str, host: str) -> None:
        self.command = command
        self.host = host
        self._process: Optional[asyncio.subprocess.Process] = None
        self._pumps: List[asyncio.Task[None]] = []

    async def __aenter__(self) -> "DevServer":
        await self.start()
        try:
            await self.wait_ready()
        except BaseException:
            await self.stop()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self) -> None:
        logger.info('Starting server with "%s"...', self.command)
        self._process = await asyncio.create_subprocess_shell(
            self.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env={"FORCE_COLOR": "1", **os.environ},
            start_new_session=True,
        )
        self._pumps = [
            asyncio.ensure_future(_pump(self._process.stdout)),
            asyncio.ensure_future(_pump(self._process.stderr)),
        ]

    async def wait_ready(self, timeout: float = STARTUP_TIMEOUT) -> None:
        await poll_url(self.host, timeout)
        logger.info("Server started on %s", self.host)

    async def stop(self) -> None:
        process = self._process
        if process is None:
            return
        self._process = None
        logger.info("Stopping server...")
        if process.returncode is None:
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
            await process.wait()
        for pump in self._pumps:
            pump.cancel()
        await asyncio.gather(*self._pumps, return_exceptions=True)
        self._pumps = []
        logger.info("Server stopped.")


async def _pump(stream: Optional[asyncio.StreamReader]) -> None:
    if stream is None:
        return
    while True:
        line = await stream.readline()
        if not line:
            return
        logger.info("server: %s", line.decode(errors="replace").rstrip("\r\n"))


__all__ = ["DevServer", "ServerStartError", "poll_url"]
