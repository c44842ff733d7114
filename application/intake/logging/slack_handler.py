import os
import logging
import requests
from datetime import datetime, timezone


class SlackErrorHandler(logging.Handler):
    """Sends ERROR and CRITICAL logs to Slack"""
    def __init__(self):
        super().__init__(level=logging.ERROR)
        self.webhook = os.getenv('SLACK_WEBHOOK_URL')
        self.enabled = bool(self.webhook)

    def build_message(self, record) -> str:
        env = os.getenv('APPLICATION_ENVIRONMENT', 'LOCAL').upper()
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()

        lines = [
            f":mag: {env}-MONITOR Please investigate the issue.",
            "",
            "Error Details",
            f"- :clock1: Timestamp: {ts}",
            f"- :triangular_flag_on_post: Level: **{record.levelname}**",
            f"- :warning: Logger: {record.name}",
            f"- :satellite: Service: {os.getenv('APP_NAME', 'candidate-intake')}",
            f"- :globe_with_meridians: Environment: {env}",
            f"- :file_folder: Module: {getattr(record, 'module', '')}",
            f"- :pushpin: Function: {getattr(record, 'funcName', '')}",
            f"- :straight_ruler: Line Number: {getattr(record, 'lineno', '')}",
            "- :memo: Message:",
            "",
            "```" + str(record.getMessage()) + "```",
        ]
        return "\n".join(lines)

    def emit(self, record):
        if not self.enabled:
            return
        try:
            requests.post(self.webhook, json={"text": self.build_message(record)}, timeout=2)
        except Exception:
            self.handleError(record)


# Export a singleton handler instance for reuse
slack_handler = SlackErrorHandler()
