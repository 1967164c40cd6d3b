"""
.. module:: vnacal.properties

========================================
properties (:mod:`vnacal.properties`)
========================================

A small tree of user metadata attached to calibrations.

A property tree is made of scalars, lists and maps (plain python
``str``/number/``None``, ``list`` and ``dict``), addressed with path
expressions:

=====================  ==================================================
``"."``                the root
``"foo"``              key ``foo`` of the root map
``"foo.bar"``          key ``bar`` of map ``foo``
``"matrix[1][2]"``     element 2 of element 1 of list ``matrix``
``"foo[0].bar"``       key ``bar`` of the first element of list ``foo``
=====================  ==================================================

Setting a path creates the maps and lists along the way, replacing any
node of the wrong kind. Setting a list index past the end pads the list
with ``None``.

.. autosummary::
   :toctree: generated/

   Properties

"""
from __future__ import annotations

import copy
import re
from typing import Any, List, Union

from .exceptions import UsageError

__all__ = ['Properties']

_TOKEN = re.compile(r'\[(\d+)\]|\.?([^.\[\]]+)')

Key = Union[str, int]


def _parse(expr: str) -> List[Key]:
    """
    Split a path expression into map keys (str) and list indices (int).
    """
    if not isinstance(expr, str):
        raise UsageError(f'property expression must be a string, not {expr!r}')
    if expr in ('', '.'):
        return []
    path = []
    pos = 0
    while pos < len(expr):
        match = _TOKEN.match(expr, pos)
        if match is None or match.end() == pos:
            raise UsageError(f'{expr}: syntax error at position {pos}')
        index, key = match.groups()
        if index is not None:
            path.append(int(index))
        else:
            if pos > 0 and expr[pos] != '.':
                raise UsageError(f'{expr}: expected "." at position {pos}')
            path.append(key)
        pos = match.end()
    return path


def _kind(node: Any) -> str:
    if isinstance(node, dict):
        return 'map'
    if isinstance(node, list):
        return 'list'
    return 'scalar'


class Properties:
    """
    Tree of scalars, lists and maps addressed by path expressions.

    Parameters
    ----------
    root : None, scalar, list or dict
        initial contents; copied

    Examples
    --------
    >>> p = Properties()
    >>> p.set('foo.bar', 'baz')
    >>> p.get('foo.bar')
    'baz'
    >>> p.keys('.')
    ['foo']
    """
    def __init__(self, root: Any = None):
        if isinstance(root, Properties):
            root = root.root
        self.root = copy.deepcopy(root)

    def __repr__(self) -> str:
        return f'Properties({self.root!r})'

    def __eq__(self, other) -> bool:
        if isinstance(other, Properties):
            return self.root == other.root
        return self.root == other

    def __bool__(self) -> bool:
        return self.root is not None

    def _lookup(self, expr: str):
        return self._lookup_path(_parse(expr), expr)

    def _lookup_path(self, path: List[Key], expr: str):
        node = self.root
        for key in path:
            if isinstance(key, int):
                if not isinstance(node, list) or key >= len(node):
                    raise KeyError(expr)
            elif not isinstance(node, dict) or key not in node:
                raise KeyError(expr)
            node = node[key]
        return node

    def __contains__(self, expr: str) -> bool:
        try:
            self._lookup(expr)
        except KeyError:
            return False
        return True

    def get(self, expr: str = '.', default: Any = KeyError) -> Any:
        """
        Return the value at `expr`.

        Collections are returned as deep copies.

        Raises
        ------
        KeyError
            if `expr` does not exist and no default was given
        """
        try:
            return copy.deepcopy(self._lookup(expr))
        except KeyError:
            if default is KeyError:
                raise
            return default

    def type(self, expr: str = '.') -> str:
        """
        Return 'map', 'list' or 'scalar' for the node at `expr`.
        """
        return _kind(self._lookup(expr))

    def count(self, expr: str = '.') -> int:
        """
        Return the number of elements in the list or map at `expr`.
        """
        node = self._lookup(expr)
        if not isinstance(node, (list, dict)):
            raise UsageError(f'{expr}: not a list or map')
        return len(node)

    def keys(self, expr: str = '.') -> List[str]:
        """
        Return the keys of the map at `expr`, in insertion order.
        """
        node = self._lookup(expr)
        if not isinstance(node, dict):
            raise UsageError(f'{expr}: not a map')
        return list(node.keys())

    def set(self, expr: str, value: Any) -> None:
        """
        Set the value at `expr`, creating intermediate nodes.

        Parameters
        ----------
        expr : str
            path expression
        value : scalar, list, dict or None
            new value; collections are copied
        """
        value = copy.deepcopy(value.root if isinstance(value, Properties)
                              else value)
        path = _parse(expr)
        if not path:
            self.root = value
            return

        def container_for(key):
            return [] if isinstance(key, int) else {}

        if _kind(self.root) != _kind(container_for(path[0])):
            self.root = container_for(path[0])
        node = self.root
        for key, next_key in zip(path[:-1], path[1:]):
            if isinstance(key, int):
                while len(node) <= key:
                    node.append(None)
            child = node.get(key) if isinstance(node, dict) else node[key]
            if _kind(child) != _kind(container_for(next_key)):
                child = container_for(next_key)
                node[key] = child
            node = child
        key = path[-1]
        if isinstance(key, int):
            while len(node) <= key:
                node.append(None)
        node[key] = value

    def delete(self, expr: str) -> None:
        """
        Delete the node at `expr`; list elements after it shift down.

        Raises
        ------
        KeyError
            if `expr` does not exist
        """
        path = _parse(expr)
        if not path:
            self.root = None
            return
        parent = self._lookup_path(path[:-1], expr)
        key = path[-1]
        if isinstance(key, int):
            if not isinstance(parent, list) or key >= len(parent):
                raise KeyError(expr)
        elif not isinstance(parent, dict) or key not in parent:
            raise KeyError(expr)
        del parent[key]

    def to_data(self) -> Any:
        """
        Return the tree as plain python objects, for serialization.
        """
        return copy.deepcopy(self.root)
