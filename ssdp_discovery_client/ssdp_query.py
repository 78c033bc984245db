#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Construction of SSDP M-SEARCH discovery requests.

A search request is a small HTTP-request-shaped message sent once to the SSDP
multicast group:

    M-SEARCH * HTTP/1.1
    Host: 239.255.255.250:1900
    MAN: ssdp:discover
    ST: <search target, or "ssdp:all">
    MX: <seconds>                      (only if the timeout is at least 1100 ms)

followed by a blank line.
"""

from __future__ import annotations

from .internal_types import *
from .constants import (
    SSDP_MULTICAST_ADDRESS,
    SSDP_PORT,
    SSDP_ALL,
    MX_MIN_TIMEOUT_MS,
    MX_NETWORK_SLACK_MS,
  )
from .util import format_host_and_port

def compute_mx(timeout_ms: int) -> Optional[int]:
    """Returns the MX (maximum wait, in seconds) to advertise for a given local timeout,
       or None if the timeout is too short for an MX header to be useful.

       MX_NETWORK_SLACK_MS of the window is held back for responses in transit, so devices
       that wait the full MX still answer before the local timeout expires.
    """
    if timeout_ms < MX_MIN_TIMEOUT_MS:
        return None
    return (timeout_ms - MX_NETWORK_SLACK_MS) // 1000

def build_msearch_request(
        search_target: Optional[str],
        timeout_ms: int,
        host: HostAndPort=(SSDP_MULTICAST_ADDRESS, SSDP_PORT),
      ) -> bytes:
    """Builds the raw M-SEARCH request datagram.

    Parameters:
        search_target:  The ST value to search for (e.g., "upnp:rootdevice"). If None,
                          "ssdp:all" is used. Other values are sent verbatim.
        timeout_ms:     The local receive timeout in milliseconds. Determines the MX header.
        host:           The (address, port) placed in the Host header. Defaults to the
                          SSDP multicast group.
    """
    lines = [
        'M-SEARCH * HTTP/1.1',
        f'Host: {format_host_and_port(host)}',
        'MAN: ssdp:discover',
        f'ST: {SSDP_ALL if search_target is None else search_target}',
      ]
    mx = compute_mx(timeout_ms)
    if mx is not None:
        lines.append(f'MX: {mx}')
    msg = ''.join(line + '\n' for line in lines) + '\r\n'
    return msg.encode('utf-8')

class SsdpDiscoveryQuery:
    """An immutable description of a single discovery query: what to search for and how
       long to wait for each response."""

    _search_target: Optional[str]
    _timeout_ms: int

    def __init__(self, search_target: Optional[str]=None, timeout_ms: int=3000):
        if timeout_ms < 0:
            raise ValueError(f"timeout_ms must be >= 0, got {timeout_ms}")
        self._search_target = search_target
        self._timeout_ms = int(timeout_ms)

    @property
    def search_target(self) -> Optional[str]:
        """The search target, or None to match all device types."""
        return self._search_target

    @property
    def timeout_ms(self) -> int:
        """The receive timeout, in milliseconds."""
        return self._timeout_ms

    @property
    def timeout(self) -> float:
        """The receive timeout, in seconds."""
        return self._timeout_ms / 1000.0

    @property
    def mx(self) -> Optional[int]:
        return compute_mx(self._timeout_ms)

    def build_request(self, host: HostAndPort=(SSDP_MULTICAST_ADDRESS, SSDP_PORT)) -> bytes:
        return build_msearch_request(self._search_target, self._timeout_ms, host=host)

    @property
    def request(self) -> bytes:
        """The M-SEARCH datagram addressed to the standard SSDP multicast group."""
        return self.build_request()

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SsdpDiscoveryQuery):
            return False
        return self._search_target == other._search_target and self._timeout_ms == other._timeout_ms

    def __hash__(self) -> int:
        return hash((self._search_target, self._timeout_ms))

    def __str__(self) -> str:
        return f"SsdpDiscoveryQuery(search_target={self._search_target!r}, timeout_ms={self._timeout_ms})"

    def __repr__(self) -> str:
        return str(self)
