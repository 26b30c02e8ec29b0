"""Application middleware."""
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .config import PUBLIC_PATHS, ROOT_PATH, USER_HEADER
from .database import get_db
from .infrastructure.repositories import UserRepository


class AuthMiddleware(BaseHTTPMiddleware):
    """Attach the forwarded user to the request; reject unknown users on /api/."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if ROOT_PATH and path.startswith(ROOT_PATH):
            path = path[len(ROOT_PATH):] or "/"

        # Allow public paths
        if path in PUBLIC_PATHS or not path.startswith("/api/"):
            return await call_next(request)

        user_id = request.headers.get(USER_HEADER)
        if user_id:
            user = UserRepository(get_db()).get_by_id(user_id.strip())
            if user:
                request.state.user = {
                    "id": user["id"],
                    "username": user["username"],
                    "display_name": user["display_name"],
                    "role": user["role"],
                }
                return await call_next(request)

        return JSONResponse(status_code=401, content={"detail": "Not authenticated"})
