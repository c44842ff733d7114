from intake.middlewares.logging_middleware import AuditMiddleware, mask_body


def test_mask_body_hides_otp_and_passwords():
    body = {"email": "a@x.com", "otp": "123456", "nested": [{"Password": "x"}]}
    assert mask_body(body) == {"email": "a@x.com", "otp": "****", "nested": [{"Password": "****"}]}


def test_mask_headers_hides_authorization():
    headers = {"Authorization": "Bearer secret", "content-type": "application/json"}
    assert AuditMiddleware._mask_headers(headers) == {"Authorization": "****", "content-type": "application/json"}
