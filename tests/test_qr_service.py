import base64
from datetime import date
from decimal import Decimal

import pytest

from src.bookings.exceptions import EncodingFailure
from src.bookings.qr_service import QRCodeEncoder
from src.bookings.schemas import QRPayload

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def make_payload(**overrides):
    data = dict(
        booking_id=1,
        token="AbCdEf123456",
        monument_name="Taj Mahal",
        visit_date=date(2025, 3, 10),
        total_amount=Decimal("50"),
        guests=1,
    )
    data.update(overrides)
    return QRPayload(**data)


def test_encode_returns_png_data_url():
    url = QRCodeEncoder().encode(make_payload())

    prefix = "data:image/png;base64,"
    assert url.startswith(prefix)
    assert base64.b64decode(url[len(prefix):]).startswith(PNG_SIGNATURE)


def test_encode_is_deterministic():
    encoder = QRCodeEncoder()
    assert encoder.encode(make_payload()) == encoder.encode(make_payload())


def test_different_tokens_give_different_images():
    encoder = QRCodeEncoder()
    assert encoder.encode(make_payload()) != encoder.encode(make_payload(token="ZyXwVu987654"))


def test_payload_json_uses_display_field_names():
    assert make_payload().to_json_dict() == {
        "bookingId": 1,
        "token": "AbCdEf123456",
        "monumentName": "Taj Mahal",
        "visitDate": "2025-03-10",
        "totalAmount": "50",
        "guests": 1,
    }


def test_long_display_names_are_not_truncated():
    # Forces a larger QR version rather than cutting the payload
    url = QRCodeEncoder().encode(make_payload(monument_name="Chhatrapati Shivaji Maharaj Vastu Sangrahalaya " * 5))
    assert url.startswith("data:image/png;base64,")


def test_oversized_payload_raises_encoding_failure():
    with pytest.raises(EncodingFailure):
        QRCodeEncoder(error_correction="H").encode(make_payload(monument_name="x" * 5000))
