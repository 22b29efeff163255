"""
QR image rendering for UPI deep links.
"""

import base64
import io
from typing import Union

import qrcode
from qrcode.constants import ERROR_CORRECT_M


class QRCodeRenderer:
    """
    Renders a string as a PNG QR code.

    Any object exposing the same ``render`` signature can be injected into
    the façade instead; the payload is passed back to callers untouched.
    """

    def render(
        self,
        data: str,
        size: int = 256,
        margin: int = 1,
        dark_color: str = '#000000',
        light_color: str = '#FFFFFF',
        output: str = 'data_uri'
    ) -> Union[str, bytes]:
        """
        Render ``data`` as a QR code.

        Args:
            data: Text to encode (usually a ``upi://pay`` link)
            size: Approximate image width in pixels
            margin: Quiet-zone width in modules
            dark_color: Module colour
            light_color: Background colour
            output: ``data_uri`` for a base64 PNG data URI, ``bytes`` for raw PNG

        Returns:
            The data URI string or PNG bytes
        """
        if output not in ('data_uri', 'bytes'):
            raise ValueError(f"Unsupported QR output: {output}")

        qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=margin)
        qr.add_data(data)
        qr.make(fit=True)
        # box size is derived from the module count so the image lands close to `size`
        qr.box_size = max(1, size // (qr.modules_count + 2 * margin))

        image = qr.make_image(fill_color=dark_color, back_color=light_color)
        buffer = io.BytesIO()
        image.save(buffer, format='PNG')
        png = buffer.getvalue()

        if output == 'bytes':
            return png
        return 'data:image/png;base64,' + base64.b64encode(png).decode('ascii')
