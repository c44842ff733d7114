import json
import logging
import os
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError

from intake.logging import handlers
from intake.logging.config import LoggingConfig
from intake.logging.formatters import AppLogsJSONFormatter, AuditLogsJSONFormatter
from intake.logging.handlers import FirehoseBufferHandler, get_app_handler
from intake.logging.slack_handler import SlackErrorHandler


def make_record(msg, level=logging.INFO, **extra):
    record = logging.LogRecord("intake.test", level, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def firehose_handler(capacity=2, fallback=None):
    client = MagicMock()
    client.put_record_batch.return_value = {"FailedPutCount": 0}
    handler = FirehoseBufferHandler("intake-test", capacity=capacity, formatter=AppLogsJSONFormatter(),
                                    client=client, fallback=fallback)
    return handler, client


def sent_messages(call):
    return [json.loads(entry["Data"])["message"] for entry in call.kwargs["Records"]]


def test_buffer_flushes_at_capacity():
    handler, client = firehose_handler(capacity=2)

    handler.handle(make_record("one"))
    client.put_record_batch.assert_not_called()

    handler.handle(make_record("two"))
    client.put_record_batch.assert_called_once()
    call = client.put_record_batch.call_args
    assert call.kwargs["DeliveryStreamName"] == "intake-test"
    assert sent_messages(call) == ["one", "two"]
    assert handler.buffer == []


def test_error_record_flushes_immediately():
    handler, client = firehose_handler(capacity=50)

    handler.handle(make_record("boom", level=logging.ERROR))

    client.put_record_batch.assert_called_once()


def test_only_rejected_records_are_resent():
    handler, client = firehose_handler(capacity=2)
    client.put_record_batch.side_effect = [
        {"FailedPutCount": 1, "RequestResponses": [{"RecordId": "r1"}, {"ErrorCode": "ServiceUnavailableException"}]},
        {"FailedPutCount": 0},
    ]

    handler.handle(make_record("one"))
    handler.handle(make_record("two"))

    assert client.put_record_batch.call_count == 2
    assert sent_messages(client.put_record_batch.call_args_list[1]) == ["two"]


def test_undelivered_records_go_to_fallback():
    fallback = MagicMock()
    handler, client = firehose_handler(capacity=1, fallback=fallback)
    client.put_record_batch.side_effect = ClientError(
        {"Error": {"Code": "ResourceNotFoundException", "Message": "no stream"}}, "PutRecordBatch")

    record = make_record("lost")
    handler.handle(record)

    assert client.put_record_batch.call_count == LoggingConfig.FIREHOSE_RETRY_COUNT
    fallback.handle.assert_called_once_with(record)


def test_flush_of_empty_buffer_sends_nothing():
    handler, client = firehose_handler()
    handler.flush()
    client.put_record_batch.assert_not_called()


def test_shared_firehose_handler_gets_context_filters_once():
    with patch.dict(handlers._handlers, clear=True), \
            patch.object(LoggingConfig, "FIREHOSE_ENABLED", True), \
            patch("intake.logging.handlers.create_firehose_client", return_value=MagicMock()):
        first = get_app_handler("intake.first")
        second = get_app_handler("intake.second")

    assert first is second
    assert len(first.filters) == 2


def test_local_file_handler_per_logger_name():
    first = get_app_handler("intake.local_one")
    second = get_app_handler("intake.local_one")
    assert first is second
    assert len(first.filters) == 2
    assert first.baseFilename.endswith("intake_local_one.log")


def test_slack_posts_error_records_only():
    with patch.dict(os.environ, {"SLACK_WEBHOOK_URL": "https://hooks.slack.test/T000"}):
        slack = SlackErrorHandler()
    logger = logging.getLogger("intake.test_slack")
    logger.propagate = False
    logger.addHandler(slack)
    try:
        with patch("intake.logging.slack_handler.requests.post") as post:
            logger.info("all good")
            post.assert_not_called()

            logger.error("registration_db_error | email=a@x.com")
            post.assert_called_once()
    finally:
        logger.removeHandler(slack)

    assert post.call_args.args[0] == "https://hooks.slack.test/T000"
    assert "registration_db_error | email=a@x.com" in post.call_args.kwargs["json"]["text"]


def test_slack_disabled_without_webhook():
    with patch.dict(os.environ, {"SLACK_WEBHOOK_URL": ""}):
        slack = SlackErrorHandler()
    with patch("intake.logging.slack_handler.requests.post") as post:
        slack.handle(make_record("boom", level=logging.ERROR))
    post.assert_not_called()


def test_app_formatter_includes_context():
    entry = json.loads(AppLogsJSONFormatter().format(make_record("otp_issued", email="a@x.com", request_id="r-1")))

    assert entry["message"] == "otp_issued"
    assert entry["email"] == "a@x.com"
    assert entry["request_id"] == "r-1"
    assert entry["candidate_id"] == ""
    assert entry["level"] == "INFO"


def test_audit_formatter_serializes_payload_and_drops_message():
    record = make_record("ignored", request={"body": {"email": "a@x.com"}}, status_code=201)

    entry = json.loads(AuditLogsJSONFormatter().format(record))

    assert "message" not in entry
    assert json.loads(entry["request"]) == {"body": {"email": "a@x.com"}}
    assert entry["response"] == ""
    assert entry["status_code"] == 201
