#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SsdpSearchWindow -- The UDP transport for a single SSDP search. It:

  1. Binds a UDP socket to a local address and port
  2. Sends one M-SEARCH request datagram to the SSDP multicast group
  3. Receives response datagrams until no datagram arrives within the receive timeout
  4. Closes the socket when the window closes or the context manager exits, whichever comes first

  The receive interface is a simple async iterator that returns a sequence of SsdpRawResponse's
  until the window closes. A receive timeout is not an error; it is the normal end of the sequence.
"""

from __future__ import annotations


import asyncio
from asyncio import Future
import socket

from .internal_types import *
from .pkg_logging import logger
from .exceptions import SsdpError, SsdpTransportError
from .constants import (
    SSDP_MULTICAST_ADDRESS,
    SSDP_PORT,
    MAX_DATAGRAM_SIZE,
    DEFAULT_MULTICAST_TTL,
  )
from .ssdp_response import SsdpRawResponse

MAX_QUEUE_SIZE = 1000

class _SsdpWindowProtocol(asyncio.DatagramProtocol):
    """An adapter between the asyncio transport and SsdpSearchWindow."""
    window: SsdpSearchWindow

    def __init__(self, window: SsdpSearchWindow):
        self.window = window

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        """Called when some datagram is received."""
        self.window.datagram_received(data, addr)

    def error_received(self, exc: Exception):
        """Called when a send or receive operation raises an OSError.

        (Other than BlockingIOError or InterruptedError.)
        """
        self.window.error_received(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        """Called when the connection is lost or closed."""
        self.window.connection_lost(exc)


class SsdpSearchWindow(
        AsyncContextManager['SsdpSearchWindow'],
        AsyncIterable[SsdpRawResponse]
      ):
    """An object that manages the socket for a single search request and all of the received responses
       within an AsyncContextManager/AsyncIterable interface.

       Only one window may be open on a given local port at a time; a second window on the
       same port fails to open with an SsdpTransportError (EADDRINUSE). A local_port of 0
       binds an ephemeral port."""

    request: bytes
    timeout_ms: int
    local_address: str
    local_port: int
    multicast_address: str
    multicast_port: int
    max_datagram_size: int
    multicast_ttl: int

    queue: asyncio.Queue[Optional[SsdpRawResponse]]
    sock: Optional[socket.socket] = None
    transport: Optional[asyncio.DatagramTransport] = None
    final_result: Optional[Future[None]] = None
    window_closed: bool = False
    transport_exc: Optional[BaseException] = None

    def __init__(
            self,
            request: bytes,
            timeout_ms: int,
            local_port: int=0,
            local_address: str='',
            multicast_address: str=SSDP_MULTICAST_ADDRESS,
            multicast_port: int=SSDP_PORT,
            max_datagram_size: int=MAX_DATAGRAM_SIZE,
            multicast_ttl: int=DEFAULT_MULTICAST_TTL,
            max_queue_size: int=MAX_QUEUE_SIZE,
          ):
        """Create an async context manager/iterable that sends a multicast search request and returns the responses
        as they arrive.

        Parameters:
            request:             The raw M-SEARCH datagram to send.
            timeout_ms:          The receive timeout, in milliseconds. The window closes when no datagram
                                    arrives within this time. 0 closes the window as soon as no
                                    datagram is already waiting; unlike a socket timeout of 0,
                                    it never means "wait forever".
            local_port:          The local UDP port to bind to. 0 binds an ephemeral port.
            local_address:       The local IP address to bind to. Defaults to '' (all interfaces).
            multicast_address:   The address to send the request to. Defaults to the SSDP multicast group.
            multicast_port:      The port to send the request to. Defaults to 1900.
            max_datagram_size:   Received datagrams longer than this are truncated. Defaults to 1024.
            multicast_ttl:       The multicast TTL (or IPv6 hop limit) for the request.

        Usage:
            async with SsdpSearchWindow(request, 3000, local_port=1901) as window:
                async for response in window:
                    print(response.src_addr, response.text)
                    # It is possible to break out of the loop early; the socket is still closed on exit.
        """
        if timeout_ms < 0:
            raise ValueError(f"timeout_ms must be >= 0, got {timeout_ms}")
        if max_datagram_size <= 0:
            raise ValueError(f"max_datagram_size must be > 0, got {max_datagram_size}")
        self.request = request
        self.timeout_ms = timeout_ms
        self.local_port = local_port
        self.local_address = local_address
        self.multicast_address = multicast_address
        self.multicast_port = multicast_port
        self.max_datagram_size = max_datagram_size
        self.multicast_ttl = multicast_ttl
        self.queue = asyncio.Queue(max_queue_size)

    @property
    def timeout(self) -> float:
        """The receive timeout, in seconds."""
        return self.timeout_ms / 1000.0

    @property
    def is_open(self) -> bool:
        """True if the socket is bound and has not been closed."""
        return self.sock is not None

    @property
    def local_addr(self) -> Optional[HostAndPort]:
        """The bound local address, or None if the socket is not open."""
        if self.sock is None:
            return None
        sockname = self.sock.getsockname()
        return (sockname[0], sockname[1])

    def _create_socket(self) -> Tuple[socket.socket, Any]:
        try:
            addrinfo = socket.getaddrinfo(self.multicast_address, self.multicast_port, type=socket.SOCK_DGRAM)[0]
        except OSError as e:
            raise SsdpTransportError(e.errno, f"Unable to resolve SSDP destination {self.multicast_address}:{self.multicast_port}: {e.strerror}") from e
        address_family = addrinfo[0]
        dest_addr = addrinfo[4]
        try:
            sock = socket.socket(address_family, socket.SOCK_DGRAM)
        except OSError as e:
            raise SsdpTransportError(e.errno, f"Unable to create UDP socket: {e.strerror}") from e
        try:
            # No SO_REUSEADDR: binding a port that is already in use must fail
            sock.bind((self.local_address, self.local_port))
            if address_family == socket.AF_INET6:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_HOPS, self.multicast_ttl)
            else:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.multicast_ttl)
        except OSError as e:
            sock.close()
            raise SsdpTransportError(e.errno, f"Unable to bind UDP socket to {self.local_address or '*'}:{self.local_port}: {e.strerror}") from e
        return sock, dest_addr

    async def open(self) -> None:
        """Binds the socket and sends the search request. Called by __aenter__."""
        if self.sock is not None or self.window_closed:
            raise SsdpError("SsdpSearchWindow cannot be reopened")
        loop = asyncio.get_running_loop()
        self.final_result = loop.create_future()
        self.sock, dest_addr = self._create_socket()
        logger.debug(f"Bound SSDP search socket to {self.local_addr}")
        try:
            untyped_transport, _ = await loop.create_datagram_endpoint(
                lambda: _SsdpWindowProtocol(self),
                sock=self.sock
              )
            # asyncio datagram transports do not inherit from asyncio.DatagramTransport
            self.transport = untyped_transport # type: ignore[assignment]
            assert self.transport is not None
            logger.debug(f"Sending SSDP search request to {dest_addr}: {self.request!r}")
            self.transport.sendto(self.request, dest_addr)
            # Send errors are reported synchronously through error_received
            if self.transport_exc is not None:
                exc = self.transport_exc
                raise SsdpTransportError(
                    getattr(exc, 'errno', None),
                    f"Unable to send SSDP search request to {dest_addr}: {exc}"
                  ) from exc
        except BaseException as e:
            # A call to __aenter__ that raises an exception will not be paired with a call to __aexit__,
            # so the socket must be closed here.
            await self.aclose()
            if isinstance(e, OSError) and not isinstance(e, SsdpTransportError):
                raise SsdpTransportError(e.errno, f"Unable to start SSDP search: {e.strerror}") from e
            raise

    async def receive(self) -> Optional[SsdpRawResponse]:
        """Returns the next response datagram, or None when the window has closed.

        The window closes when no datagram arrives within the receive timeout. Once None has
        been returned, every later call also returns None.

        Raises SsdpTransportError if the transport reported an error while the window was open.
        """
        if self.window_closed:
            return None
        self._raise_if_failed()
        if self.transport is None:
            raise SsdpError("SsdpSearchWindow is not open")
        result: Optional[SsdpRawResponse]
        if not self.queue.empty():
            result = self.queue.get_nowait()
        else:
            try:
                result = await asyncio.wait_for(self.queue.get(), self.timeout)
            except asyncio.TimeoutError:
                logger.debug(f"SSDP search window closed after {self.timeout_ms} ms without a response")
                await self.aclose()
                return None
        if result is None:
            # None is queued only to wake the receiver after a transport error
            self._raise_if_failed()
            await self.aclose()
        return result

    def _raise_if_failed(self) -> None:
        if self.transport_exc is not None:
            exc = self.transport_exc
            self.transport_exc = None
            self.window_closed = True
            if self.transport is not None:
                self.transport.close()
            raise SsdpTransportError(getattr(exc, 'errno', None), f"SSDP transport failed: {exc}") from exc

    async def iter_responses(self) -> AsyncIterator[SsdpRawResponse]:
        while True:
            response = await self.receive()
            if response is None:
                break
            yield response

    def __aiter__(self) -> AsyncIterator[SsdpRawResponse]:
        return self.iter_responses()

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        if self.window_closed:
            return
        if len(data) > self.max_datagram_size:
            logger.debug(f"Truncating {len(data)}-byte datagram from {addr} to {self.max_datagram_size} bytes")
            data = data[:self.max_datagram_size]
        response = SsdpRawResponse(data, addr)
        logger.debug(f"Received datagram from {addr}: {data!r}")
        try:
            self.queue.put_nowait(response)
        except asyncio.QueueFull:
            logger.warning(f"Queue full, dropping datagram from {addr}: {data!r}")

    def error_received(self, exc: Exception) -> None:
        logger.info(f"Error received from SSDP search transport: {exc}")
        if self.transport_exc is None and not self.window_closed:
            self.transport_exc = exc
            try:
                # wake up the waiting receiver
                self.queue.put_nowait(None)
            except asyncio.QueueFull:
                # queue is full so the receiver will see the error on its next call
                pass

    def connection_lost(self, exc: Optional[Exception]) -> None:
        logger.debug(f"SSDP search transport closed, exc={exc}")
        if exc is not None:
            self.error_received(exc)
        self.transport = None
        self.sock = None
        if self.final_result is not None and not self.final_result.done():
            self.final_result.set_result(None)

    async def aclose(self) -> None:
        """Closes the window and its socket, and waits for the transport to finish closing."""
        self.window_closed = True
        if self.transport is not None:
            try:
                self.transport.close()
            except Exception as e:
                logger.error(f"Error closing SSDP search transport: {e}")
            if self.final_result is not None:
                await asyncio.shield(self.final_result)
        elif self.sock is not None:
            self.sock.close()
            self.sock = None
        if self.final_result is not None and not self.final_result.done():
            self.final_result.set_result(None)

    async def __aenter__(self) -> SsdpSearchWindow:
        await self.open()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        await self.aclose()
        return False
