"""Open file limit discovery."""

from __future__ import annotations

import sys

_DEFAULT_LIMIT = 50000
_WINDOWS_LIMIT = 10000

if sys.platform == "win32":

    def get_file_limit() -> int:
        """Return the number of files the process may keep open."""
        return _WINDOWS_LIMIT

else:
    import resource

    def get_file_limit() -> int:
        """Raise the open file soft limit to the hard limit and return the usable value."""
        limit = _DEFAULT_LIMIT

        try:
            _, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
        except (OSError, ValueError):
            hard = None

        if hard is not None:
            if hard != resource.RLIM_INFINITY:
                limit = int(hard)
            try:
                resource.setrlimit(resource.RLIMIT_NOFILE, (hard, hard))
            except (OSError, ValueError):
                return limit

        try:
            soft, _ = resource.getrlimit(resource.RLIMIT_NOFILE)
        except (OSError, ValueError):
            return limit
        if soft != resource.RLIM_INFINITY and soft < limit:
            limit = int(soft)
        return limit