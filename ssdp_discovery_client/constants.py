# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by this package"""

SSDP_MULTICAST_ADDRESS = "239.255.255.250"
"""The multicast address used by SSDP for UDP multicast."""

SSDP_PORT = 1900
"""The port number used by SSDP for UDP multicast."""

SSDP_ALL = "ssdp:all"
"""The wildcard search target that matches all device and service types."""

DISCOVER_ALL_LOCAL_PORT = 1901
"""The local UDP port bound by default for a discover-all search."""

DISCOVER_ONE_LOCAL_PORT = 1902
"""The local UDP port bound by default for a discover-one search."""

MAX_DATAGRAM_SIZE = 1024
"""The maximum number of bytes kept from each response datagram. Longer
   datagrams are truncated."""

MX_MIN_TIMEOUT_MS = 1100
"""The smallest timeout (in milliseconds) for which an MX header is sent."""

MX_NETWORK_SLACK_MS = 100
"""Part of the timeout (in milliseconds) reserved for responses in transit, so
   the advertised MX never exceeds the local receive timeout."""

DEFAULT_MULTICAST_TTL = 2
"""The IP multicast TTL set on outgoing search requests."""
