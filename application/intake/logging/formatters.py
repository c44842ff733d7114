"""
JSON formatters: one object per record carrying the service envelope plus the
request context fields each stream needs.
"""
import json
import logging
from datetime import datetime, timezone

# Settings
from intake.config.settings import IntakeConfigs
configs = IntakeConfigs()


class JSONLogFormatter(logging.Formatter):
    # (attribute, default) pairs copied from the record when present
    context_fields = ()
    include_message = True

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line_number': record.lineno,
            'environment': configs.APPLICATION_ENVIRONMENT,
            'service': configs.APP_NAME,
        }
        if self.include_message:
            entry['message'] = record.getMessage()
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        for field, default in self.context_fields:
            entry[field] = getattr(record, field, default)
        self.add_payload(entry, record)
        return json.dumps(entry, ensure_ascii=False, default=str)

    def add_payload(self, entry: dict, record) -> None:
        pass


class AppLogsJSONFormatter(JSONLogFormatter):
    context_fields = (
        ('request_id', ''),
        ('email', ''),
        ('candidate_id', ''),
        ('app_version', ''),
        ('web_version', ''),
    )


class AuditLogsJSONFormatter(JSONLogFormatter):
    """Audit records carry their payload in extras; the message text is dropped."""
    include_message = False
    context_fields = (
        ('request_id', ''),
        ('duration', 0.0),
        ('header_referer', ''),
        ('hostname', ''),
        ('app_name', ''),
        ('module_name', ''),
        ('request_method', ''),
        ('request_path', ''),
        ('size_in_bytes', 0),
        ('status_code', 0),
        ('version', ''),
    )

    def add_payload(self, entry: dict, record) -> None:
        # request/response bodies are stored serialized
        for key in ('request', 'response'):
            data = getattr(record, key, None)
            entry[key] = json.dumps(data, ensure_ascii=False, default=str) if data else ''
