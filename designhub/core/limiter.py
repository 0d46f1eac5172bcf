"""SlowAPI rate limiter singleton.

Only the export download endpoint is limited: each miss opens a remote
ShapeDiver session, which is the expensive part of the service. There is
no authentication, so the key is the client address.

    @router.post("/download")
    @limiter.limit(settings.download_rate_limit)
    async def handler(request: Request, ...):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=[])
