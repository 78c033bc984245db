#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Shared fixtures: a private event loop runner, and a fake SSDP device responder on the loopback interface."""

from __future__ import annotations

import asyncio
import pytest

from ssdp_discovery_client.internal_types import *
from ssdp_discovery_client import SsdpClient

LOOPBACK = '127.0.0.1'

def make_response(st: str, usn: str, location: str="http://192.168.1.10:49152/description.xml", extra: str="") -> bytes:
    return (
        "HTTP/1.1 200 OK\r\n"
        "CACHE-CONTROL: max-age=1800\r\n"
        "EXT:\r\n"
        f"LOCATION: {location}\r\n"
        "SERVER: Linux/5.10 UPnP/1.0 TestDevice/1.0\r\n"
        f"ST: {st}\r\n"
        f"USN: {usn}\r\n"
        f"{extra}"
        "\r\n"
    ).encode('utf-8')

class FakeSsdpResponder(asyncio.DatagramProtocol):
    """Stands in for the devices on the multicast group: answers every request it receives
       with a fixed list of datagrams, in order."""

    responses: List[bytes]
    requests: List[Tuple[bytes, HostAndPort]]
    transport: Optional[asyncio.DatagramTransport] = None

    def __init__(self, responses: Iterable[bytes]):
        self.responses = list(responses)
        self.requests = []

    def connection_made(self, transport: asyncio.BaseTransport):
        self.transport = transport # type: ignore[assignment]

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        self.requests.append((data, addr))
        assert self.transport is not None
        for response in self.responses:
            self.transport.sendto(response, addr)

    @property
    def port(self) -> int:
        assert self.transport is not None
        return self.transport.get_extra_info('sockname')[1]

    def client(self, **kwargs: Any) -> SsdpClient:
        """An SsdpClient whose "multicast" destination is this responder."""
        return SsdpClient(
            multicast_address=LOOPBACK,
            multicast_port=self.port,
            local_address=LOOPBACK,
            **kwargs
          )

    def close(self) -> None:
        if self.transport is not None:
            self.transport.close()
            self.transport = None

async def start_responder(responses: Iterable[bytes]) -> FakeSsdpResponder:
    loop = asyncio.get_running_loop()
    _, protocol = await loop.create_datagram_endpoint(
        lambda: FakeSsdpResponder(responses),
        local_addr=(LOOPBACK, 0)
      )
    assert isinstance(protocol, FakeSsdpResponder)
    return protocol

@pytest.fixture
def run() -> Iterator[Callable[[Awaitable[Any]], Any]]:
    """Runs a coroutine to completion on a private event loop."""
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        yield loop.run_until_complete
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            asyncio.set_event_loop(None)
            loop.close()

@pytest.fixture
def responder_factory() -> Callable[[Iterable[bytes]], Awaitable[FakeSsdpResponder]]:
    return start_responder

@pytest.fixture
def make_ssdp_response() -> Callable[..., bytes]:
    return make_response
