"""Key-value storage backends used by the session and token caches.

The caches only need three async operations -- read a string, write a
string, delete a key -- defined by :class:`KeyValueStorage`. Two backends
ship with the package:

:class:`MemoryStorage`
    A dict. Nothing survives the process; used in tests and for one-shot
    scripts.
:class:`DiskStorage`
    A :class:`diskcache.Cache` directory, one per profile, used by the CLI
    so a session restored in one invocation is still there in the next.
"""

from clerklite.storage.base import KeyValueStorage
from clerklite.storage.disk import DiskStorage
from clerklite.storage.memory import MemoryStorage

__all__ = ["DiskStorage", "KeyValueStorage", "MemoryStorage"]
