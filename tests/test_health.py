import json
import logging

from src.logging_config import CustomJsonFormatter


def test_root(client):
    body = client.get("/").json()

    assert body["status"] == "Running"
    assert body["docs"] == "/docs"


def test_health(client):
    r = client.get("/health")

    assert r.status_code == 200
    assert r.json() == {"status": "healthy", "database": "connected"}


def test_json_formatter_adds_standard_fields():
    formatter = CustomJsonFormatter("%(message)s")
    record = logging.LogRecord("src.bookings", logging.INFO, __file__, 1, "Booking %s issued", (7,), None)

    output = json.loads(formatter.format(record))

    assert output["message"] == "Booking 7 issued"
    assert output["level"] == "INFO"
    assert output["logger"] == "src.bookings"
