"""Unit tests for structured logging"""

import json
import logging
from unittest.mock import patch
from delivery_shield.config import settings
from delivery_shield.infrastructure.observability.logging import CustomJsonFormatter


def test_service_name_comes_from_settings():
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    record = logging.LogRecord("delivery_shield.test", logging.INFO, __file__, 1, "refund evaluated", None, None)

    with patch.object(settings, "service_name", "delivery-shield-eu"):
        payload = json.loads(formatter.format(record))

    assert payload["service"] == "delivery-shield-eu"
    assert payload["level"] == "INFO"
    assert payload["message"] == "refund evaluated"
