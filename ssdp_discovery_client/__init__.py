# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package ssdp_discovery_client discovers UPnP devices with the Simple Service Discovery Protocol (SSDP).

A discovery sends a single M-SEARCH request to the SSDP multicast group (239.255.255.250:1900),
collects the responses that arrive before the receive timeout elapses, keeps those that match
the requested search target (ST), and parses them into SsdpDevice records.

There are two entry points:

    devices = await discover_all(3000, "upnp:rootdevice")   # a tuple of every matching device, in arrival order
    device = await discover_one(3000, "upnp:rootdevice")    # the first matching device, or None

Matching is a loose substring test on the whole response text by default; see SsdpMatchPolicy.
The NOTIFY (advertisement) side of SSDP is not implemented.
"""

from .version import __version__

from .internal_types import Jsonable, JsonableDict, HostAndPort

from .exceptions import SsdpError, SsdpTransportError, SsdpParseError

from .ssdp_query import SsdpDiscoveryQuery, build_msearch_request, compute_mx
from .ssdp_response import SsdpRawResponse, SsdpDevice, SsdpResponseParser, parse_ssdp_response
from .ssdp_transport import SsdpSearchWindow
from .ssdp_collector import (
    SsdpMatchPolicy,
    SsdpParseErrorPolicy,
    iter_matching_devices,
    collect_all,
    collect_first,
  )
from .client import SsdpClient, discover_all, discover_one, DEFAULT_TIMEOUT_MS
from .util import CaseInsensitiveDict
from .constants import (
    SSDP_MULTICAST_ADDRESS,
    SSDP_PORT,
    SSDP_ALL,
    DISCOVER_ALL_LOCAL_PORT,
    DISCOVER_ONE_LOCAL_PORT,
    MAX_DATAGRAM_SIZE,
  )

__all__ = [
    '__version__',
    'Jsonable', 'JsonableDict', 'HostAndPort',
    'SsdpError', 'SsdpTransportError', 'SsdpParseError',
    'SsdpDiscoveryQuery', 'build_msearch_request', 'compute_mx',
    'SsdpRawResponse', 'SsdpDevice', 'SsdpResponseParser', 'parse_ssdp_response',
    'SsdpSearchWindow',
    'SsdpMatchPolicy', 'SsdpParseErrorPolicy', 'iter_matching_devices', 'collect_all', 'collect_first',
    'SsdpClient', 'discover_all', 'discover_one', 'DEFAULT_TIMEOUT_MS',
    'CaseInsensitiveDict',
    'SSDP_MULTICAST_ADDRESS', 'SSDP_PORT', 'SSDP_ALL',
    'DISCOVER_ALL_LOCAL_PORT', 'DISCOVER_ONE_LOCAL_PORT', 'MAX_DATAGRAM_SIZE',
]
