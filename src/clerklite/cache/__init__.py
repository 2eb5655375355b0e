"""Session and token caches for clerklite.

Both caches sit on a :class:`~clerklite.storage.KeyValueStorage` and share
one rule: a storage or parse failure is never raised to the caller. It is
logged and treated as a cache miss, because a miss is always recoverable.

:class:`SessionCache`
    The single "last known" session plus the time it was written, used by
    :class:`~clerklite.restoration.SessionRestorer` on startup.
:class:`TokenCache`
    Session JWTs keyed by session id and template, served until shortly
    before they expire.
"""

from clerklite.cache.session_cache import SESSION_CACHE_KEY, SessionCache
from clerklite.cache.token_cache import TOKEN_CACHE_KEY, TokenCache

__all__ = ["SESSION_CACHE_KEY", "SessionCache", "TOKEN_CACHE_KEY", "TokenCache"]
