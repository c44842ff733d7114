"""
Log handlers for the candidate intake service

With FIREHOSE_ENABLED records are buffered and shipped to Kinesis Firehose in
batches; records Firehose keeps rejecting land in a local fallback file.
Otherwise every logger writes JSON lines under LOG_DIR.
"""
import logging
import os
import time
from logging.handlers import MemoryHandler
from typing import List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from intake.logging.config import LoggingConfig
from intake.logging.filters import CandidateContextFilter, RequestContextFilter
from intake.logging.formatters import AppLogsJSONFormatter, AuditLogsJSONFormatter


def create_firehose_client():
    return boto3.client(
        "firehose",
        region_name=LoggingConfig.FIREHOSE_REGION_NAME,
        aws_access_key_id=LoggingConfig.FIREHOSE_ACCESS_KEY_ID,
        aws_secret_access_key=LoggingConfig.FIREHOSE_SECRET_ACCESS_KEY,
        config=Config(connect_timeout=10, read_timeout=30),
    )


class FirehoseBufferHandler(MemoryHandler):
    """
    Buffers records and sends them with put_record_batch when the buffer is
    full, an ERROR record arrives or LOG_BUFFER_TIMEOUT has passed.
    """

    def __init__(self, stream_name: str, capacity: int, formatter: logging.Formatter,
                 client=None, fallback: Optional[logging.Handler] = None):
        super().__init__(capacity=capacity, flushLevel=logging.ERROR)
        self.stream_name = stream_name
        self.client = client or create_firehose_client()
        self.fallback = fallback
        self.max_attempts = max(1, LoggingConfig.FIREHOSE_RETRY_COUNT)
        self.buffer_timeout = LoggingConfig.LOG_BUFFER_TIMEOUT
        self.last_flush = time.time()
        self.setFormatter(formatter)

    def shouldFlush(self, record):
        return super().shouldFlush(record) or time.time() - self.last_flush >= self.buffer_timeout

    def put_records(self, entries: List[dict]) -> List[dict]:
        """Send entries, resending only the rejected ones. Returns the entries never accepted."""
        pending = entries
        for _ in range(self.max_attempts):
            if not pending:
                break
            try:
                response = self.client.put_record_batch(DeliveryStreamName=self.stream_name, Records=pending)
            except (BotoCoreError, ClientError):
                continue
            if not response.get("FailedPutCount"):
                return []
            results = response.get("RequestResponses", [])
            if len(results) == len(pending):
                pending = [entry for entry, result in zip(pending, results) if result.get("ErrorCode")]
        return pending

    def flush(self):
        self.acquire()
        try:
            records, self.buffer = self.buffer, []
            self.last_flush = time.time()
            if not records:
                return
            entries = [{"Data": self.format(record)} for record in records]
            undelivered = {id(entry) for entry in self.put_records(entries)}
            if undelivered and self.fallback is not None:
                for record, entry in zip(records, entries):
                    if id(entry) in undelivered:
                        self.fallback.handle(record)
        finally:
            self.release()


_handlers = {}


def _with_context(handler: logging.Handler, audit: bool = False) -> logging.Handler:
    handler.addFilter(RequestContextFilter())
    if not audit:
        handler.addFilter(CandidateContextFilter())
    return handler


def get_local_file_handler(name: str = 'app', audit: bool = False) -> logging.Handler:
    key = f"file:{name}"
    if key not in _handlers:
        os.makedirs(LoggingConfig.LOG_DIR, exist_ok=True)
        handler = logging.FileHandler(os.path.join(LoggingConfig.LOG_DIR, f'{name}.log'), delay=True)
        handler.setFormatter(AuditLogsJSONFormatter() if audit else AppLogsJSONFormatter())
        _handlers[key] = _with_context(handler, audit)
    return _handlers[key]


def _get_firehose_handler(key: str, stream_name: str, audit: bool) -> logging.Handler:
    if key not in _handlers:
        handler = FirehoseBufferHandler(
            stream_name,
            capacity=LoggingConfig.AUDIT_LOGS_CAPACITY if audit else LoggingConfig.APP_LOGS_CAPACITY,
            formatter=AuditLogsJSONFormatter() if audit else AppLogsJSONFormatter(),
            fallback=get_local_file_handler(f'{key}_undelivered', audit),
        )
        _handlers[key] = _with_context(handler, audit)
    return _handlers[key]


def get_app_handler(name: str = 'app') -> logging.Handler:
    """Shared Firehose handler, or one local file per logger name"""
    if LoggingConfig.FIREHOSE_ENABLED:
        return _get_firehose_handler('app', LoggingConfig.APP_LOGS_STREAM_NAME or 'candidate-intake-app-logs', False)
    return get_local_file_handler(name.replace('.', '_'))


def get_audit_handler(method: str = '') -> logging.Handler:
    if LoggingConfig.FIREHOSE_ENABLED:
        if method == 'GET':
            return _get_firehose_handler(
                'audit_get', LoggingConfig.AUDIT_LOGS_GET_STREAM_NAME or 'candidate-intake-audit-get-logs', True)
        return _get_firehose_handler(
            'audit_all', LoggingConfig.AUDIT_LOGS_STREAM_NAME or 'candidate-intake-audit-logs', True)
    return get_local_file_handler('audit_logs_backup', audit=True)


def flush_all_handlers():
    for handler in list(_handlers.values()):
        handler.flush()
