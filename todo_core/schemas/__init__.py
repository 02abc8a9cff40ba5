"""
Todo core schema definitions

Any schema has a base name and any of the following extended names:
 * ``Creation`` to create a new instance of that schema
 * ``Patch`` to modify an existing instance of that schema
 * ``Request`` for the payload of an action that doesn't map to a model
For example, there are three classes involved with tasks:
``Task``, ``TaskCreation`` and ``TaskPatch``

A patch has optional fields only. Any field of the original model
that should not be affected by some proposed change can therefore
just be omitted with a patch (a ``null`` value is treated the same).

This package also contains the ``config`` module, but it's not
exported by default, since it's currently only used internally.
"""

from .bases import *
from .errors import *
