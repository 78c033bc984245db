#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Received SSDP response datagrams, and the device records parsed from them.
"""

from __future__ import annotations

import re
import time
import datetime

from .internal_types import *
from .exceptions import SsdpParseError
from .util import (
    CaseInsensitiveDict,
    decode_payload,
    split_lines_at_lf_or_crlf,
    parse_http_headers,
  )

class SsdpRawResponse:
    """A single datagram received during a search window, before any parsing."""

    data: bytes
    """The raw UDP datagram contents, possibly truncated to the window's maximum datagram size"""

    src_addr: HostAndPort
    """The source address of the datagram"""

    monotonic_time: float
    """The local time (in seconds) since an arbitrary point in the past at which
       the datagram was received, as returned by time.monotonic()."""

    utc_time: datetime.datetime
    """The UTC time at which the datagram was received."""

    _text: Optional[str] = None

    def __init__(self, data: bytes, src_addr: HostAndPort) -> None:
        self.data = data
        self.src_addr = (src_addr[0], src_addr[1])
        self.monotonic_time = time.monotonic()
        self.utc_time = datetime.datetime.now(datetime.timezone.utc)

    @property
    def text(self) -> str:
        """The datagram decoded as UTF-8, with invalid bytes replaced."""
        if self._text is None:
            self._text = decode_payload(self.data)
        return self._text

    def __str__(self) -> str:
        return f"SsdpRawResponse(src_addr={self.src_addr}, data={self.data!r})"

    def __repr__(self) -> str:
        return str(self)

class SsdpDevice:
    """A device record parsed from an SSDP search response.

    Instances are immutable; the header dictionary is copied on access.
    """

    _src_addr: HostAndPort
    _raw_data: bytes
    _statement_line: str
    _http_version: str
    _status_code: int
    _status: str
    _headers: CaseInsensitiveDict[str]

    def __init__(
            self,
            src_addr: HostAndPort,
            statement_line: str,
            http_version: str,
            status_code: int,
            status: str,
            headers: Mapping[str, str],
            raw_data: bytes=b'',
          ) -> None:
        self._src_addr = (src_addr[0], src_addr[1])
        self._statement_line = statement_line
        self._http_version = http_version
        self._status_code = status_code
        self._status = status
        self._headers = CaseInsensitiveDict(headers)
        self._raw_data = raw_data

    @property
    def src_addr(self) -> HostAndPort:
        return self._src_addr

    @property
    def ip(self) -> str:
        """The IP address of the responding device."""
        return self._src_addr[0]

    @property
    def port(self) -> int:
        return self._src_addr[1]

    @property
    def statement_line(self) -> str:
        """The first line of the response; e.g., "HTTP/1.1 200 OK"."""
        return self._statement_line

    @property
    def http_version(self) -> str:
        return self._http_version

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def status(self) -> str:
        return self._status

    @property
    def headers(self) -> CaseInsensitiveDict[str]:
        """A copy of the response headers, keyed case-insensitively."""
        return self._headers.copy()

    @property
    def raw_data(self) -> bytes:
        return self._raw_data

    def get_header(self, name: str, default: Optional[str]=None) -> Optional[str]:
        return self._headers.get(name, default)

    @property
    def location(self) -> Optional[str]:
        """The LOCATION header: the URL of the device description document."""
        return self._headers.get('LOCATION')

    @property
    def server(self) -> Optional[str]:
        return self._headers.get('SERVER')

    @property
    def service_type(self) -> Optional[str]:
        """The ST header, or the NT header for NOTIFY-shaped replies."""
        result = self._headers.get('ST')
        if result is None:
            result = self._headers.get('NT')
        return result

    @property
    def usn(self) -> Optional[str]:
        """The USN header: the unique service name of the device or service."""
        return self._headers.get('USN')

    @property
    def cache_control(self) -> Optional[str]:
        return self._headers.get('CACHE-CONTROL')

    _max_age_re = re.compile(r'max-age *= *(?P<max_age>[0-9]+)', re.IGNORECASE)

    @property
    def max_age(self) -> Optional[int]:
        """The max-age directive of the CACHE-CONTROL header, in seconds.

        Returns None if there is no CACHE-CONTROL header or it has no valid max-age.
        """
        cache_control = self.cache_control
        if cache_control is None:
            return None
        m = self._max_age_re.search(cache_control)
        if m is None:
            return None
        return int(m.group('max_age'))

    def to_jsonable(self) -> JsonableDict:
        result: JsonableDict = {
            "src_addr": f"{self.ip}:{self.port}",
            "statement_line": self._statement_line,
            "status_code": self._status_code,
            "headers": dict(self._headers.items()),
        }
        return result

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SsdpDevice):
            return False
        return (self._src_addr == other._src_addr and
                self._statement_line == other._statement_line and
                self._headers == other._headers and
                self._raw_data == other._raw_data)

    def __hash__(self) -> int:
        return hash((self._src_addr, self._statement_line, self._raw_data))

    def __str__(self) -> str:
        return f"SsdpDevice(ip={self.ip!r}, st={self.service_type!r}, usn={self.usn!r}, location={self.location!r})"

    def __repr__(self) -> str:
        return str(self)

SsdpResponseParser = Callable[[bytes, HostAndPort], SsdpDevice]
"""A function that turns a raw response payload and its sender address into an SsdpDevice,
   raising SsdpParseError if the payload is not a valid response."""

_response_statement_re = re.compile(r'^HTTP/(?P<version_major>[0-9]+)\.(?P<version_minor>[0-9]+) +(?P<status_code>[0-9]{3})(?: +(?P<status>.*?))? *$')

def parse_ssdp_response(data: bytes, src_addr: HostAndPort) -> SsdpDevice:
    """Parses an HTTP-response-shaped SSDP search reply into an SsdpDevice.

    Either '\\r\\n' or '\\n' line endings are accepted. The payload may have been
    truncated; headers that are cut off mid-line are kept as received.

    Raises SsdpParseError if the payload is empty or its first line is not an
    HTTP status line.
    """
    if len(data) == 0:
        raise SsdpParseError(f"Empty SSDP response from {src_addr}")
    text = decode_payload(data)
    statement_and_remainder = split_lines_at_lf_or_crlf(text, 1)
    statement_line = statement_and_remainder[0].strip()
    m = _response_statement_re.match(statement_line)
    if m is None:
        raise SsdpParseError(f"Not an SSDP response from {src_addr}: {statement_line!r}")
    remainder = '' if len(statement_and_remainder) < 2 else statement_and_remainder[1]
    headers = parse_http_headers(remainder)
    return SsdpDevice(
        src_addr,
        statement_line=statement_line,
        http_version=f"{m.group('version_major')}.{m.group('version_minor')}",
        status_code=int(m.group('status_code')),
        status=m.group('status') or '',
        headers=headers,
        raw_data=data,
      )
