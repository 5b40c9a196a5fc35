from io import BytesIO
import base64
import json
import logging

import qrcode
from qrcode import constants
from qrcode.exceptions import DataOverflowError

from src.bookings.exceptions import EncodingFailure
from src.bookings.schemas import QRPayload

logger = logging.getLogger(__name__)

class QRCodeEncoder:
    """Renders a booking's display fields into a PNG QR code data URL.

    The output is a pure function of the payload: keys are sorted and the PNG
    is rendered without timestamps, so equal payloads give equal data URLs.
    """

    def __init__(self, error_correction: str = "M", box_size: int = 10, border: int = 1):
        self.error_correction = getattr(constants, f"ERROR_CORRECT_{error_correction}")
        self.box_size = box_size
        self.border = border

    def encode(self, payload: QRPayload) -> str:
        qr_data = json.dumps(payload.to_json_dict(), separators=(',', ':'), sort_keys=True)

        try:
            qr = qrcode.QRCode(
                version=None,
                error_correction=self.error_correction,
                box_size=self.box_size,
                border=self.border,
            )
            qr.add_data(qr_data)
            qr.make(fit=True)

            qr_image = qr.make_image(fill_color="black", back_color="white")
            buffer = BytesIO()
            qr_image.save(buffer, format="PNG")
        except (DataOverflowError, ValueError, OSError) as e:
            raise EncodingFailure(f"QR code generation failed: {e}") from e

        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"
