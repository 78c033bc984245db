#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Filtering of received SSDP responses against a search target, and collection of the
matching responses into SsdpDevice records.
"""

from __future__ import annotations

from enum import Enum

from .internal_types import *
from .pkg_logging import logger
from .exceptions import SsdpParseError
from .ssdp_response import (
    SsdpRawResponse,
    SsdpDevice,
    SsdpResponseParser,
    parse_ssdp_response,
  )

class SsdpMatchPolicy(Enum):
    """How a response is matched against the requested search target."""

    SUBSTRING = 'substring'
    """The response matches if its entire decoded text contains the search target anywhere.
       A search target that happens to appear in an unrelated header also matches. This is
       the default, for compatibility with devices that echo the target in other headers."""

    ST_HEADER = 'st-header'
    """The response matches only if its parsed ST header (or NT, if there is no ST) equals the
       search target exactly."""

    def matches(self, response: SsdpRawResponse, search_target: Optional[str], device: Optional[SsdpDevice]=None) -> bool:
        """Returns True if the response matches search_target. A search_target of None matches everything.

        For ST_HEADER, device is the already-parsed response; it is required in that mode.
        """
        if search_target is None:
            return True
        if self is SsdpMatchPolicy.SUBSTRING:
            return search_target in response.text
        assert device is not None
        return device.service_type == search_target

    @property
    def needs_parsed_response(self) -> bool:
        """True if the policy has to look at the parsed response rather than the raw text."""
        return self is SsdpMatchPolicy.ST_HEADER

class SsdpParseErrorPolicy(Enum):
    """What to do when a response that passes the match test cannot be parsed.

    Under SsdpMatchPolicy.ST_HEADER with a search target, a response must parse before it can
    match at all, so an unparseable response there is treated as a non-match and neither policy applies."""

    SKIP = 'skip'
    """Log a warning, drop the response, and keep collecting."""

    ABORT = 'abort'
    """Raise the SsdpParseError out of the collector, ending the discovery."""

async def iter_matching_devices(
        responses: AsyncIterable[SsdpRawResponse],
        search_target: Optional[str],
        parser: SsdpResponseParser=parse_ssdp_response,
        match_policy: SsdpMatchPolicy=SsdpMatchPolicy.SUBSTRING,
        parse_error_policy: SsdpParseErrorPolicy=SsdpParseErrorPolicy.SKIP,
      ) -> AsyncIterator[SsdpDevice]:
    """An async generator that yields an SsdpDevice for each response that matches search_target,
       in arrival order. Responses that do not match are silently dropped.

    Parameters:
        responses:            The raw responses, typically an open SsdpSearchWindow.
        search_target:        The search target to match, or None to match every response.
        parser:               Turns a matching response into an SsdpDevice.
        match_policy:         How responses are matched against search_target.
        parse_error_policy:   Whether an unparseable matching response is skipped or fatal.
    """
    async for response in responses:
        if not match_policy.needs_parsed_response and not match_policy.matches(response, search_target):
            logger.debug(f"Ignoring SSDP response from {response.src_addr} that does not match {search_target!r}")
            continue
        try:
            device = parser(response.data, response.src_addr)
        except SsdpParseError as e:
            if match_policy.needs_parsed_response and search_target is not None:
                logger.debug(f"Ignoring unparseable SSDP response from {response.src_addr} that cannot match {search_target!r}: {e}")
                continue
            if parse_error_policy is SsdpParseErrorPolicy.ABORT:
                raise
            logger.warning(f"Skipping unparseable SSDP response from {response.src_addr}, raw=[{response.data!r}]: {e}")
            continue
        if not match_policy.matches(response, search_target, device):
            logger.debug(f"Ignoring SSDP response from {response.src_addr} that does not match {search_target!r}")
            continue
        yield device

async def collect_all(
        responses: AsyncIterable[SsdpRawResponse],
        search_target: Optional[str],
        parser: SsdpResponseParser=parse_ssdp_response,
        match_policy: SsdpMatchPolicy=SsdpMatchPolicy.SUBSTRING,
        parse_error_policy: SsdpParseErrorPolicy=SsdpParseErrorPolicy.SKIP,
      ) -> Tuple[SsdpDevice, ...]:
    """Consumes every response and returns the matching devices in arrival order, as an immutable tuple."""
    results: List[SsdpDevice] = []
    devices = iter_matching_devices(
        responses,
        search_target,
        parser=parser,
        match_policy=match_policy,
        parse_error_policy=parse_error_policy,
      )
    try:
        async for device in devices:
            results.append(device)
    finally:
        await devices.aclose()
    return tuple(results)

async def collect_first(
        responses: AsyncIterable[SsdpRawResponse],
        search_target: Optional[str],
        parser: SsdpResponseParser=parse_ssdp_response,
        match_policy: SsdpMatchPolicy=SsdpMatchPolicy.SUBSTRING,
        parse_error_policy: SsdpParseErrorPolicy=SsdpParseErrorPolicy.SKIP,
      ) -> Optional[SsdpDevice]:
    """Returns the first matching device, without consuming any later responses.

    Returns None if the responses end without a match.
    """
    devices = iter_matching_devices(
        responses,
        search_target,
        parser=parser,
        match_policy=match_policy,
        parse_error_policy=parse_error_policy,
      )
    try:
        async for device in devices:
            return device
    finally:
        await devices.aclose()
    return None
