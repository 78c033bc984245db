#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Simple utility functions used by this package
"""

from __future__ import annotations

from typing_extensions import SupportsIndex

from ssdp_discovery_client.internal_types import *

from email.parser import HeaderParser
from email.message import Message as EmailParserMessage
from requests.structures import CaseInsensitiveDict

def decode_payload(data: bytes) -> str:
    """Decodes a raw datagram payload as UTF-8 text.

    Invalid or truncated byte sequences are replaced rather than rejected, since
    response datagrams may be cut off at an arbitrary byte boundary.
    """
    return data.decode('utf-8', errors='replace')

def split_lines_at_lf_or_crlf(text: str, maxsplit: SupportsIndex = -1) -> List[str]:
    """Split a string at LF or CRLF.

    If maxsplit is given, at most maxsplit splits are done.

    Returns a List[str] representing the delimited lines with the delimiters removed.
    """
    parts = text.split('\n', maxsplit)
    for i, part in enumerate(parts):
        if part.endswith('\r'):
            parts[i] = part[:-1]
    return parts

def parse_http_headers(text: str) -> CaseInsensitiveDict[str]:
    """Parse HTTP-style headers out of a string.

    A relaxed interpretation of '\\n' as a line delimiter is accepted even though '\\r\\n' is required
    by the standard. Parsing stops at the first blank line; any body that follows is ignored.

    It is assumed that any preceding statement line (e.g., "HTTP/1.1 200 OK\\r\\n") has already been removed.

    Header values are stripped of surrounding whitespace but otherwise not decoded. If a header
    is repeated, the last value wins.

    Returns a CaseInsensitiveDict[str] that preserves the case of the header names as received.
    """
    msg: EmailParserMessage = HeaderParser().parsestr(text, headersonly=True)
    headers: CaseInsensitiveDict[str] = CaseInsensitiveDict()
    for name, value in msg.items():
        headers[name] = str(value).strip()
    return headers

def format_host_and_port(addr: HostAndPort) -> str:
    """Formats a (host, port) tuple as "host:port", bracketing IPv6 hosts."""
    host, port = addr[0], addr[1]
    if ':' in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"
