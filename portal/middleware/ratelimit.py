import time
import asyncio
import logging
from collections import deque
from typing import Callable, Iterable
from fastapi import Request
from fastapi.responses import JSONResponse
from jose import jwt, JWTError

logger = logging.getLogger(__name__)

class RateLimitMiddleware:
    """Sliding-window limiter for credential endpoints (login, SSO)."""

    def __init__(
        self,
        app,
        *,
        window_seconds: int,
        max_calls: int,
        key_func: Callable[[Request], str],
        include_path_prefixes: Iterable[str] = ("/login", "/sso"),
    ):
        self.app = app
        self.window = window_seconds
        self.max_calls = max_calls
        self.key_func = key_func
        self.include_paths = tuple(include_path_prefixes)

        self._buckets: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()

    def _should_guard(self, scope) -> bool:
        path = scope.get("path", "")
        return scope.get("method") == "POST" and path.startswith(self.include_paths)

    async def _retry_after(self, key: str) -> int | None:
        now = time.monotonic()
        async with self._lock:
            q = self._buckets.setdefault(key, deque())
            cutoff = now - self.window
            while q and q[0] < cutoff:
                q.popleft()
            if len(q) >= self.max_calls:
                return max(1, int(q[0] + self.window - now))
            q.append(now)
        return None

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not self._should_guard(scope):
            return await self.app(scope, receive, send)

        key = self.key_func(Request(scope, receive=receive))
        retry_after = await self._retry_after(key)
        if retry_after is None:
            return await self.app(scope, receive, send)

        logger.warning(f"Rate limit hit for {key} on {scope.get('path')}")
        resp = JSONResponse(
            status_code=429,
            content={
                "detail": "Too many attempts, try again later",
                "kind": "RateLimited",
                "try_again_in": retry_after,
            },
        )
        resp.headers["Retry-After"] = str(retry_after)
        return await resp(scope, receive, send)


def make_key_func(secret_key: str) -> Callable[[Request], str]:
    def _key(req: Request) -> str:
        auth = req.headers.get("authorization", "")
        if auth.lower().startswith("bearer "):
            try:
                sub = jwt.decode(auth.split(" ", 1)[1].strip(), secret_key, algorithms=["HS256"]).get("sub")
                if sub:
                    return f"user:{sub}"
            except JWTError:
                pass
        return f"ip:{req.client.host if req.client else 'unknown'}"
    return _key
