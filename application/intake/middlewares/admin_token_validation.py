import hmac

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import httpx
from intake.config.settings import IntakeConfigs
from intake.logging.utils import get_app_logger

logger = get_app_logger(__name__)
configs = IntakeConfigs()


def _unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"success": False, "error": "UNAUTHORIZED", "message": message},
    )


class AdminTokenValidationMiddleware(BaseHTTPMiddleware):
    """
    Guards the admin API. A bearer token equal to ADMIN_API_TOKEN is accepted
    locally; any other token is checked against the auth service when
    AUTH_SERVICE_URL is configured.
    """

    include_path_start = "/admin/v1"

    def __init__(self, app, admin_token: str | None = None, auth_service_url: str | None = None):
        super().__init__(app)
        self.admin_token = configs.ADMIN_API_TOKEN if admin_token is None else admin_token
        self.auth_service_url = configs.AUTH_SERVICE_URL if auth_service_url is None else auth_service_url
        if self.auth_service_url and not self.auth_service_url.endswith("/"):
            self.auth_service_url += "/"
        self.validation_url = f"{self.auth_service_url}api/check-token/" if self.auth_service_url else None
        self.timeout = 10.0

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return await call_next(request)

        if not request.url.path.startswith(self.include_path_start):
            return await call_next(request)

        auth_header = request.headers.get("authorization")
        if not auth_header:
            logger.warning("token_missing_authorization_header")
            return _unauthorized("Token is required")

        token = auth_header[7:].strip() if auth_header.startswith("Bearer ") else auth_header.strip()
        if not token:
            logger.warning("token_missing_bearer_value")
            return _unauthorized("Token is required")

        if self.admin_token and hmac.compare_digest(token.encode(), self.admin_token.encode()):
            request.state.admin_auth = "static_token"
            return await call_next(request)

        if not self.validation_url:
            logger.warning(f"token_invalid | path={request.url.path}")
            return _unauthorized("Invalid token")

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    self.validation_url,
                    params={"token": token},
                    timeout=self.timeout
                )
        except httpx.HTTPError as e:
            logger.warning(f"token_validation_request_error | url={self.validation_url} | error={e}")
            return _unauthorized("Token validation failed")

        logger.info(f"status={response.status_code} | url={self.validation_url}")
        if response.status_code != 200:
            logger.warning(f"token_validation_failed | status={response.status_code}")
            return _unauthorized("Token validation failed")

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"token_validation_bad_response | url={self.validation_url}")
            return _unauthorized("Token validation failed")

        if not data.get("valid", False):
            logger.warning(f"token_invalid | url={self.validation_url}")
            return _unauthorized("Invalid token")

        request.state.admin_auth = "auth_service"
        return await call_next(request)
