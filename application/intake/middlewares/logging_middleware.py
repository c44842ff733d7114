"""
Audit and request logging middleware for the candidate intake service.
One audit record per request; OTP codes, passwords and Authorization headers
are masked before they reach the log stream.
"""
import json
import socket
import time
from datetime import datetime

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from intake.logging.utils import get_app_logger, init_audit_logger
from intake.logging.config import LoggingConfig
from intake.middlewares.request_context import create_request_id, request_context, clear_request_context

# settings
from intake.config.settings import IntakeConfigs
configs = IntakeConfigs()

APP_NAME = configs.APP_NAME
APP_VERSION = configs.APP_VERSION

MASK = '****'
SENSITIVE_HEADERS = {'authorization', 'cookie'}
SENSITIVE_BODY_FIELDS = {'otp', 'password', 'token'}


def mask_body(data):
    """Recursively mask sensitive keys of a decoded JSON body"""
    if isinstance(data, dict):
        return {
            k: (MASK if str(k).lower() in SENSITIVE_BODY_FIELDS else mask_body(v))
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [mask_body(item) for item in data]
    return data


class AuditMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, exclude_paths: list[str] | None = None):
        super().__init__(app)
        self.logger = get_app_logger('intake.audit_middleware')
        self.exclude_audit_paths = exclude_paths or ['/health', '/docs', '/redoc', '/openapi.json']
        self.hostname = socket.gethostname()
        self.app_name = APP_NAME
        self.version = APP_VERSION

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = create_request_id()
        start_time = time.time()
        timestamp = datetime.now().isoformat()

        should_audit = LoggingConfig.AUDIT_LOGGING_ENABLED and not any(
            request.url.path.startswith(p) for p in self.exclude_audit_paths
        )
        # body is only needed for the audit record
        body_bytes = await request.body() if should_audit else b''

        request_context.request_method = request.method
        request_context.request_path = request.url.path
        request_context.app_version = request.headers.get('x-app-version', '')
        request_context.web_version = request.headers.get('x-web-version', '')

        try:
            response = await call_next(request)
            duration = (time.time() - start_time) * 1000
            response.headers['X-Request-ID'] = request_id

            if should_audit:
                audit_data = self._build_audit_data(request, response, body_bytes, duration, request_id, timestamp)
                init_audit_logger(request.method).info("Audit log", extra=audit_data)
            return response
        except Exception as exc:
            duration = (time.time() - start_time) * 1000
            self.logger.error(
                f"request_failed | method={request.method} path={request.url.path} exception={exc.__class__.__name__} duration_ms={duration:.0f}",
                exc_info=True,
            )
            if should_audit:
                audit_data = self._build_audit_data(request, Response(status_code=500), body_bytes, duration, request_id, timestamp)
                audit_data['exception'] = exc.__class__.__name__
                init_audit_logger(request.method).info("Audit log (exception)", extra=audit_data)
            raise
        finally:
            clear_request_context()

    @staticmethod
    def _mask_headers(headers) -> dict:
        return {k: (MASK if k.lower() in SENSITIVE_HEADERS else v) for k, v in headers.items()}

    @staticmethod
    def _parse_body(request: Request, body_bytes: bytes):
        if not body_bytes:
            return {}
        content_type = request.headers.get('content-type', '')
        if 'multipart/form-data' in content_type:
            # uploaded photos are never written to the audit stream
            return '[multipart body omitted]'
        if 'application/json' in content_type:
            try:
                return mask_body(json.loads(body_bytes.decode('utf-8')))
            except (json.JSONDecodeError, UnicodeDecodeError):
                return '[unparseable json body]'
        return body_bytes.decode('utf-8', errors='replace')[:1000]

    def _build_audit_data(
        self,
        request: Request,
        response: Response,
        body_bytes: bytes,
        duration: float,
        request_id: str,
        timestamp: str,
    ) -> dict:
        status = getattr(response, 'status_code', 0)
        # response data: capture only for non-2xx and when flag is enabled
        response_data = ''
        body = getattr(response, 'body', None)
        if LoggingConfig.CAPTURE_RESPONSE_BODY and not 200 <= status < 300 and body:
            resp_ct = response.headers.get('content-type', '')
            if 'application/json' in resp_ct:
                response_data = json.loads(body.decode('utf-8'))
            else:
                response_data = body.decode('utf-8', errors='replace')[:1000]

        request_json = {
            "GET": dict(request.query_params),
            "BODY": self._parse_body(request, body_bytes),
            "HEADERS": self._mask_headers(dict(request.headers)),
        }

        return {
            'duration': round(duration, 2),
            'header_referer': request.headers.get('referer', ''),
            'hostname': self.hostname,
            'app_name': self.app_name,
            'module_name': request_context.module_name,
            'request': request_json,
            'request_id': request_id,
            'request_method': request.method,
            'request_path': request.url.path,
            'response': response_data,
            'size_in_bytes': len(body) if body else 0,
            'status_code': status,
            'timestamp': timestamp,
            'version': self.version,
            'app_version': request_context.app_version,
            'web_version': request_context.web_version,
            'email': request_context.email,
            'candidate_id': request_context.candidate_id,
        }
