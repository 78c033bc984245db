#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import asyncio
import errno
import time
import pytest

from ssdp_discovery_client.internal_types import *
from ssdp_discovery_client import (
    SsdpSearchWindow,
    SsdpTransportError,
    SsdpError,
    build_msearch_request,
  )

LOOPBACK = "127.0.0.1"

TIMEOUT_MS = 300

def make_window(responder, local_port: int=0, timeout_ms: int=TIMEOUT_MS, **kwargs: Any) -> SsdpSearchWindow:
    return SsdpSearchWindow(
        build_msearch_request(None, timeout_ms),
        timeout_ms,
        local_port=local_port,
        local_address=LOOPBACK,
        multicast_address=LOOPBACK,
        multicast_port=responder.port,
        **kwargs
      )

def test_sends_request_and_receives_responses(run, responder_factory, make_ssdp_response):
    datagrams = [make_ssdp_response("upnp:rootdevice", f"uuid:{i}") for i in range(3)]
    async def body():
        responder = await responder_factory(datagrams)
        try:
            window = make_window(responder)
            async with window:
                local_addr = window.local_addr
                received = [response async for response in window]
            assert len(responder.requests) == 1
            request, src = responder.requests[0]
            assert request == build_msearch_request(None, TIMEOUT_MS)
            assert src == local_addr
            assert [r.data for r in received] == datagrams
            assert all(r.src_addr == (LOOPBACK, responder.port) for r in received)
        finally:
            responder.close()
    run(body())

def test_timeout_ends_sequence_without_error(run, responder_factory):
    async def body():
        responder = await responder_factory([])
        try:
            async with make_window(responder, timeout_ms=100) as window:
                start = time.monotonic()
                assert await window.receive() is None
                assert time.monotonic() - start >= 0.05
                # the window stays closed
                assert await window.receive() is None
                assert [r async for r in window] == []
                assert not window.is_open
        finally:
            responder.close()
    run(body())

def test_zero_timeout_does_not_block(run, responder_factory):
    async def body():
        responder = await responder_factory([])
        try:
            async with make_window(responder, timeout_ms=0) as window:
                assert await window.receive() is None
        finally:
            responder.close()
    run(body())

def test_long_datagrams_are_truncated(run, responder_factory):
    big = b"HTTP/1.1 200 OK\r\nX-Padding: " + b"x" * 3000 + b"\r\n\r\n"
    async def body():
        responder = await responder_factory([big])
        try:
            async with make_window(responder) as window:
                received = [r async for r in window]
            assert len(received) == 1
            assert len(received[0].data) == 1024
            assert received[0].data == big[:1024]
        finally:
            responder.close()
    run(body())

def test_max_datagram_size_is_configurable(run, responder_factory):
    async def body():
        responder = await responder_factory([b"0123456789"])
        try:
            async with make_window(responder, max_datagram_size=4) as window:
                received = [r async for r in window]
            assert [r.data for r in received] == [b"0123"]
        finally:
            responder.close()
    run(body())

def test_socket_closed_on_early_exit(run, responder_factory, make_ssdp_response):
    datagrams = [make_ssdp_response("upnp:rootdevice", f"uuid:{i}") for i in range(3)]
    async def body():
        responder = await responder_factory(datagrams)
        try:
            window = make_window(responder, timeout_ms=5000)
            async with window:
                port = window.local_addr[1]
                async for response in window:
                    break
            assert not window.is_open
            # the port can be bound again immediately
            async with make_window(responder, local_port=port, timeout_ms=50) as again:
                assert again.local_addr[1] == port
        finally:
            responder.close()
    run(body())

def test_socket_closed_when_body_raises(run, responder_factory, make_ssdp_response):
    async def body():
        responder = await responder_factory([make_ssdp_response("upnp:rootdevice", "uuid:a")])
        try:
            window = make_window(responder, timeout_ms=5000)
            with pytest.raises(KeyError):
                async with window:
                    await window.receive()
                    raise KeyError("boom")
            assert not window.is_open
        finally:
            responder.close()
    run(body())

def test_same_port_cannot_be_shared(run, responder_factory):
    async def body():
        responder = await responder_factory([])
        try:
            async with make_window(responder, timeout_ms=2000) as first:
                port = first.local_addr[1]
                with pytest.raises(SsdpTransportError) as exc_info:
                    async with make_window(responder, local_port=port):
                        pass
                assert exc_info.value.errno == errno.EADDRINUSE
                assert isinstance(exc_info.value, OSError)
                assert isinstance(exc_info.value, SsdpError)
                # a different port is fine
                async with make_window(responder, timeout_ms=50) as second:
                    assert second.local_addr[1] != port
        finally:
            responder.close()
    run(body())

def test_unresolvable_destination_is_fatal(run):
    async def body():
        window = SsdpSearchWindow(
            build_msearch_request(None, 100),
            100,
            local_address=LOOPBACK,
            multicast_address="no-such-host.invalid",
          )
        with pytest.raises(SsdpTransportError):
            async with window:
                pass
        assert not window.is_open
    run(body())

def test_window_cannot_be_reopened(run, responder_factory):
    async def body():
        responder = await responder_factory([])
        try:
            window = make_window(responder, timeout_ms=10)
            async with window:
                pass
            with pytest.raises(SsdpError):
                async with window:
                    pass
        finally:
            responder.close()
    run(body())

def test_invalid_arguments():
    with pytest.raises(ValueError):
        SsdpSearchWindow(b"", -1)
    with pytest.raises(ValueError):
        SsdpSearchWindow(b"", 100, max_datagram_size=0)

def test_transport_lost_with_error_raises_transport_error(run, responder_factory):
    async def body():
        responder = await responder_factory([])
        try:
            window = make_window(responder, timeout_ms=2000)
            async with window:
                transport = window.transport
                assert transport is not None
                try:
                    window.connection_lost(ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused"))
                    with pytest.raises(SsdpTransportError) as exc_info:
                        await window.receive()
                    assert exc_info.value.errno == errno.ECONNREFUSED
                    assert await window.receive() is None
                finally:
                    transport.close()
                    await asyncio.sleep(0)
        finally:
            responder.close()
    run(body())
