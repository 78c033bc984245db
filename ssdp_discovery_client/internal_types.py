#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Type hints used internally by this package. Intended to be star-imported.
"""


from typing import (
    Dict, List, Optional, Union, Any, Tuple, Set, Callable, Awaitable,
    Iterable, Iterator, Mapping, MutableMapping, Sequence,
    AsyncIterable, AsyncIterator, AsyncContextManager, TYPE_CHECKING,
  )

from types import TracebackType

from typing_extensions import Self, TypeAlias

HostAndPort: TypeAlias = Tuple[str, int]
"""A (host, port) socket address."""

Jsonable: TypeAlias = Union[
    None, bool, int, float, str,
    List['Jsonable'], Dict[str, 'Jsonable'],
  ]
"""A value that can be serialized with json.dumps()."""

JsonableDict: TypeAlias = Dict[str, Jsonable]
"""A JSON object."""
