# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SsdpClient -- An SSDP client that can:

  1. Send an M-SEARCH discovery request to the SSDP multicast address (239.255.255.250:1900)
  2. Receive response datagrams from devices until the receive timeout elapses
  3. Filter the responses against a search target and parse the matches into SsdpDevice records
  4. Return either every matching device, or just the first one
"""

from __future__ import annotations

from .internal_types import *
from .pkg_logging import logger
from .constants import (
    SSDP_MULTICAST_ADDRESS,
    SSDP_PORT,
    DISCOVER_ALL_LOCAL_PORT,
    DISCOVER_ONE_LOCAL_PORT,
    MAX_DATAGRAM_SIZE,
    DEFAULT_MULTICAST_TTL,
  )

from .ssdp_query import SsdpDiscoveryQuery
from .ssdp_response import SsdpDevice, SsdpResponseParser, parse_ssdp_response
from .ssdp_transport import SsdpSearchWindow
from .ssdp_collector import (
    SsdpMatchPolicy,
    SsdpParseErrorPolicy,
    collect_all,
    collect_first,
  )

DEFAULT_TIMEOUT_MS = 3000
"""The default receive timeout, in milliseconds."""

class SsdpClient:
    """
    An SSDP client that can:

      1. Send an M-SEARCH discovery request to the SSDP multicast address (239.255.255.250:1900)
      2. Receive response datagrams from devices until the receive timeout elapses
      3. Filter the responses against a search target and parse the matches into SsdpDevice records
      4. Return either every matching device, or just the first one

    The client holds configuration only; every search opens and closes its own socket. Each
    discovery mode binds its own fixed local port by default, so at most one discover_all() and
    one discover_one() can be in flight at a time. Pass local_port=0 to use an ephemeral port instead.
    """

    multicast_address: str = SSDP_MULTICAST_ADDRESS
    """The multicast address to send requests to."""

    multicast_port: int = SSDP_PORT
    """The multicast port to send requests to."""

    local_address: str = ''
    """The local IP address to bind to. '' binds all interfaces."""

    discover_all_port: int = DISCOVER_ALL_LOCAL_PORT
    """The local port bound by discover_all() when no local_port is given."""

    discover_one_port: int = DISCOVER_ONE_LOCAL_PORT
    """The local port bound by discover_one() when no local_port is given."""

    max_datagram_size: int = MAX_DATAGRAM_SIZE
    multicast_ttl: int = DEFAULT_MULTICAST_TTL
    match_policy: SsdpMatchPolicy = SsdpMatchPolicy.SUBSTRING
    parse_error_policy: SsdpParseErrorPolicy = SsdpParseErrorPolicy.SKIP
    parser: SsdpResponseParser

    def __init__(
            self,
            multicast_address: str=SSDP_MULTICAST_ADDRESS,
            multicast_port: int=SSDP_PORT,
            local_address: str='',
            discover_all_port: int=DISCOVER_ALL_LOCAL_PORT,
            discover_one_port: int=DISCOVER_ONE_LOCAL_PORT,
            max_datagram_size: int=MAX_DATAGRAM_SIZE,
            multicast_ttl: int=DEFAULT_MULTICAST_TTL,
            match_policy: SsdpMatchPolicy=SsdpMatchPolicy.SUBSTRING,
            parse_error_policy: SsdpParseErrorPolicy=SsdpParseErrorPolicy.SKIP,
            parser: SsdpResponseParser=parse_ssdp_response,
          ) -> None:
        self.multicast_address = multicast_address
        self.multicast_port = multicast_port
        self.local_address = local_address
        self.discover_all_port = discover_all_port
        self.discover_one_port = discover_one_port
        self.max_datagram_size = max_datagram_size
        self.multicast_ttl = multicast_ttl
        self.match_policy = match_policy
        self.parse_error_policy = parse_error_policy
        self.parser = parser

    def search(
            self,
            timeout_ms: int=DEFAULT_TIMEOUT_MS,
            search_target: Optional[str]=None,
            local_port: int=0,
          ) -> SsdpSearchWindow:
        """Create an async context manager/iterable that sends a multicast search request and returns the raw
           responses as they arrive, without filtering or parsing.

        Parameters:
            timeout_ms:     The receive timeout, in milliseconds.
            search_target:  The ST to search for. If None, "ssdp:all" is sent.
            local_port:     The local port to bind to. Defaults to 0 (an ephemeral port).

        Usage:
            async with ssdp_client.search(3000, "upnp:rootdevice") as window:
                async for response in window:
                    print(response.text)
                    # It is possible to break out of the loop early if desired; e.g., if you got the response you were looking for..
        """
        query = SsdpDiscoveryQuery(search_target, timeout_ms)
        request = query.build_request(host=(self.multicast_address, self.multicast_port))
        return SsdpSearchWindow(
            request,
            query.timeout_ms,
            local_port=local_port,
            local_address=self.local_address,
            multicast_address=self.multicast_address,
            multicast_port=self.multicast_port,
            max_datagram_size=self.max_datagram_size,
            multicast_ttl=self.multicast_ttl,
          )

    async def discover_all(
            self,
            timeout_ms: int=DEFAULT_TIMEOUT_MS,
            search_target: Optional[str]=None,
            local_port: Optional[int]=None,
          ) -> Tuple[SsdpDevice, ...]:
        """Searches for devices and returns every matching device that responds before the
           receive timeout elapses, in arrival order. The result is a tuple and cannot be modified.

        Parameters:
            timeout_ms:     The receive timeout, in milliseconds. Timeouts of 1100 ms or more
                              also advertise an MX of (timeout_ms - 100) // 1000 seconds.
            search_target:  The ST to search for, e.g., "upnp:rootdevice". If None, all devices
                              are searched for and every response is returned.
            local_port:     The local port to bind to. Defaults to discover_all_port (1901).

        Raises SsdpTransportError if the socket cannot be bound or the request cannot be sent.
        """
        if local_port is None:
            local_port = self.discover_all_port
        logger.debug(f"discover_all: search_target={search_target!r}, timeout_ms={timeout_ms}, local_port={local_port}")
        async with self.search(timeout_ms, search_target, local_port=local_port) as window:
            devices = await collect_all(
                window,
                search_target,
                parser=self.parser,
                match_policy=self.match_policy,
                parse_error_policy=self.parse_error_policy,
              )
        logger.debug(f"discover_all: found {len(devices)} device(s)")
        return devices

    async def discover_one(
            self,
            timeout_ms: int=DEFAULT_TIMEOUT_MS,
            search_target: Optional[str]=None,
            local_port: Optional[int]=None,
          ) -> Optional[SsdpDevice]:
        """Searches for devices and returns the first matching device to respond. The search
           ends as soon as a match arrives.

        Parameters:
            timeout_ms:     The receive timeout, in milliseconds.
            search_target:  The ST to search for. If None, the first response of any kind is returned.
            local_port:     The local port to bind to. Defaults to discover_one_port (1902).

        Returns None if no matching device responds before the receive timeout elapses.

        Raises SsdpTransportError if the socket cannot be bound or the request cannot be sent.
        """
        if local_port is None:
            local_port = self.discover_one_port
        logger.debug(f"discover_one: search_target={search_target!r}, timeout_ms={timeout_ms}, local_port={local_port}")
        async with self.search(timeout_ms, search_target, local_port=local_port) as window:
            device = await collect_first(
                window,
                search_target,
                parser=self.parser,
                match_policy=self.match_policy,
                parse_error_policy=self.parse_error_policy,
              )
        logger.debug(f"discover_one: found {device}")
        return device

async def discover_all(
        timeout_ms: int=DEFAULT_TIMEOUT_MS,
        search_target: Optional[str]=None,
        local_port: Optional[int]=None,
      ) -> Tuple[SsdpDevice, ...]:
    """Discovers all devices matching search_target with a default SsdpClient.
       See SsdpClient.discover_all()."""
    return await SsdpClient().discover_all(timeout_ms, search_target, local_port=local_port)

async def discover_one(
        timeout_ms: int=DEFAULT_TIMEOUT_MS,
        search_target: Optional[str]=None,
        local_port: Optional[int]=None,
      ) -> Optional[SsdpDevice]:
    """Discovers the first device matching search_target with a default SsdpClient.
       See SsdpClient.discover_one()."""
    return await SsdpClient().discover_one(timeout_ms, search_target, local_port=local_port)
