#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

class SsdpError(Exception):
  """Base class for all error exceptions defined by this package."""
  pass

class SsdpTransportError(SsdpError, OSError):
  """A fatal failure to resolve, bind, or send on the discovery socket.

     The errno of the underlying OSError, if any, is preserved."""
  pass

class SsdpParseError(SsdpError, ValueError):
  """A received datagram could not be parsed as an SSDP response."""
  pass
