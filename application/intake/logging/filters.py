"""
Logging Filters for the candidate intake service (FastAPI)
"""
import logging
from intake.middlewares.request_context import request_context


class RequestContextFilter(logging.Filter):
    def filter(self, record):
        record.request_id = getattr(request_context, 'request_id', None) or ''
        # Inject HTTP method and path if present in context
        record.request_method = getattr(request_context, 'request_method', '') or ''
        record.request_path = getattr(request_context, 'request_path', '') or ''
        # Inject version headers if present in context
        record.app_version = getattr(request_context, 'app_version', '') or ''
        record.web_version = getattr(request_context, 'web_version', '') or ''
        return True


class CandidateContextFilter(logging.Filter):
    def filter(self, record):
        record.email = getattr(request_context, 'email', '') or ''
        record.candidate_id = getattr(request_context, 'candidate_id', '') or ''
        return True
