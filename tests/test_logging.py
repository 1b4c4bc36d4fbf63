import logging

from promptbench.core.logging import RedactingFormatter, redact


def test_redact_api_keys_and_bearer_tokens():
    assert redact("key=sk-abcdefghijklmnopqrstuvwx") == "key=***"
    assert redact("Authorization: Bearer ollama-local.token") == "Authorization: Bearer ***"


def test_formatter_redacts_arguments():
    record = logging.LogRecord(
        "promptbench", logging.WARNING, __file__, 1, "upstream said %s", ("bad key sk-abcdefghijklmnopqrstuvwx",), None
    )
    assert RedactingFormatter("%(message)s").format(record) == "upstream said bad key ***"
