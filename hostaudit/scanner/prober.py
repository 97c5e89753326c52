# hostaudit/scanner/prober.py
"""
Bounded socket prober.

The one place that opens sockets. Every service check connects through
open_connection() so deadlines and cleanup are enforced in a single spot:

    - connect (and TLS handshake) is bounded by ProbeTimeouts.connect_timeout
    - the first banner read is bounded by ProbeTimeouts.read_timeout,
      measured from connect initiation
    - the connection is closed on every exit path; a graceful close only
      gets what is left of max(connect_timeout, read_timeout) since connect
      initiation, after that the transport is aborted

Failures surface as ProbeTimeout / ProbeRefused / ProbeConnectionError;
the calling check decides what each one means for its verdict.
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from hostaudit.config import ProbeTimeouts
from hostaudit.errors import ProbeConnectionError, ProbeRefused, ProbeTimeout

logger = logging.getLogger(__name__)

# Banners are short; one read of this size is the "first chunk"
BANNER_READ_SIZE = 4096


def insecure_tls_context() -> ssl.SSLContext:
    """
    TLS context with verification disabled. Used to inspect certificates
    that a verifying client would reject (self-signed, expired, mismatched).
    """
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class ProbeConnection:
    """An open, deadline-aware connection handed out by open_connection()."""

    def __init__(
        self,
        host: str,
        port: int,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        timeouts: ProbeTimeouts,
        started_at: float,
    ):
        self.host = host
        self.port = port
        self.reader = reader
        self.writer = writer
        self.timeouts = timeouts
        self.started_at = started_at

    def remaining(self) -> float:
        loop = asyncio.get_running_loop()
        return self.timeouts.read_timeout - (loop.time() - self.started_at)

    async def read_first_chunk(self, size: int = BANNER_READ_SIZE) -> bytes:
        """
        Wait for the first inbound chunk. Does not wait for a full line or
        for more chunks. Raises ProbeTimeout if nothing arrives before the
        deadline and ProbeConnectionError if the peer closes without data.
        """
        remaining = self.remaining()
        if remaining <= 0:
            raise ProbeTimeout(self.host, self.port, "deadline passed before banner read")

        try:
            data = await asyncio.wait_for(self.reader.read(size), timeout=remaining)
        except (asyncio.TimeoutError, TimeoutError):
            raise ProbeTimeout(
                self.host, self.port,
                f"no banner within {self.timeouts.read_timeout}s",
            ) from None
        except ConnectionRefusedError:
            raise ProbeRefused(self.host, self.port, "connection refused") from None
        except OSError as e:
            raise ProbeConnectionError(self.host, self.port, str(e) or type(e).__name__) from e

        if not data:
            raise ProbeConnectionError(self.host, self.port, "closed before sending a banner")
        return data

    def peer_certificate(self) -> Optional[bytes]:
        """DER bytes of the peer certificate, or None on a plain TCP connection."""
        ssl_object = self.writer.get_extra_info("ssl_object")
        if ssl_object is None:
            return None
        return ssl_object.getpeercert(binary_form=True)

    def close_remaining(self) -> float:
        """Time left for a graceful close before the probe's overall ceiling."""
        loop = asyncio.get_running_loop()
        ceiling = max(self.timeouts.connect_timeout, self.timeouts.read_timeout)
        return ceiling - (loop.time() - self.started_at)

    async def close(self) -> None:
        self.writer.close()
        remaining = self.close_remaining()
        if remaining <= 0:
            logger.debug(f"Probe ceiling reached, aborting {self.host}:{self.port}")
            self.writer.transport.abort()
            return
        try:
            await asyncio.wait_for(self.writer.wait_closed(), timeout=remaining)
        except (asyncio.TimeoutError, TimeoutError, OSError) as e:
            # Peer did not finish the close handshake; drop the transport.
            logger.debug(f"Forcing close of {self.host}:{self.port}: {type(e).__name__}")
            self.writer.transport.abort()


@asynccontextmanager
async def open_connection(
    host: str,
    port: int,
    timeouts: Optional[ProbeTimeouts] = None,
    tls: Optional[ssl.SSLContext] = None,
    server_hostname: Optional[str] = None,
) -> AsyncIterator[ProbeConnection]:
    """
    Open a TCP (or TLS, when `tls` is given) connection with a hard connect
    deadline. The connection is closed when the block exits, however it exits.
    """
    timeouts = timeouts or ProbeTimeouts()
    loop = asyncio.get_running_loop()
    started_at = loop.time()

    kwargs = {}
    if tls is not None:
        kwargs["ssl"] = tls
        kwargs["server_hostname"] = server_hostname or host

    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port, **kwargs),
            timeout=timeouts.connect_timeout,
        )
    except (asyncio.TimeoutError, TimeoutError):
        raise ProbeTimeout(host, port, f"connect timed out after {timeouts.connect_timeout}s") from None
    except ConnectionRefusedError:
        raise ProbeRefused(host, port, "connection refused") from None
    except ssl.SSLError as e:
        raise ProbeConnectionError(host, port, f"TLS handshake failed: {e}") from e
    except OSError as e:
        raise ProbeConnectionError(host, port, str(e) or type(e).__name__) from e

    conn = ProbeConnection(host, port, reader, writer, timeouts, started_at)
    try:
        yield conn
    finally:
        await conn.close()


async def probe_banner(host: str, port: int, timeouts: Optional[ProbeTimeouts] = None) -> str:
    """Connect and return the first chunk the service sends, decoded as text."""
    async with open_connection(host, port, timeouts) as conn:
        data = await conn.read_first_chunk()
    return data.decode("utf-8", errors="replace")


async def fetch_peer_certificate(
    host: str,
    port: int,
    timeouts: Optional[ProbeTimeouts] = None,
    server_hostname: Optional[str] = None,
) -> bytes:
    """Complete a TLS handshake without verification and return the DER certificate."""
    async with open_connection(
        host, port, timeouts, tls=insecure_tls_context(), server_hostname=server_hostname,
    ) as conn:
        der = conn.peer_certificate()
    if not der:
        raise ProbeConnectionError(host, port, "TLS handshake completed without a peer certificate")
    return der
