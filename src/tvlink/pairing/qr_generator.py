"""QR code generation for pairing.

Renders the backend-supplied auth URL as a QR code for display in the
terminal, in a browser, or as a PNG file.
"""

import base64
import io

import qrcode
from PIL import Image
from qrcode.main import QRCode


class QrGenerator:
    """Generate QR codes for a pairing auth URL.

    Images are black on white with a quiet-zone border, scaled to a
    fixed square size so they stay scannable from across a room.
    """

    def __init__(self, auth_url: str, size: int = 512):
        """Initialize QR generator.

        Args:
            auth_url: Payload to encode.
            size: Edge length in pixels of rendered images.
        """
        self.auth_url = auth_url
        self.size = size

    def _create_qr(self) -> QRCode:
        """Create QR code object.

        Returns:
            QRCode instance with payload data.
        """
        qr = qrcode.QRCode(
            version=None,  # Auto-size
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(self.auth_url)
        qr.make(fit=True)
        return qr

    def to_image(self) -> Image.Image:
        """Render as a size x size black-on-white image."""
        qr = self._create_qr()
        img = qr.make_image(fill_color="black", back_color="white").get_image()
        # Nearest-neighbour keeps module edges sharp
        return img.convert("RGB").resize((self.size, self.size), Image.NEAREST)

    def to_terminal(self) -> str:
        """Generate ASCII art for terminal display.

        Returns:
            String with QR code using Unicode block characters.
        """
        qr = self._create_qr()
        output = io.StringIO()
        qr.print_ascii(out=output, invert=True)
        return output.getvalue()

    def to_png(self, path: str) -> None:
        """Save QR code as PNG file.

        Args:
            path: Path to save PNG file.
        """
        self.to_image().save(path, format="PNG")

    def to_html(self) -> str:
        """Generate HTML with embedded QR code.

        Returns:
            Complete HTML document with embedded QR code image.
        """
        buffer = io.BytesIO()
        self.to_image().save(buffer, format="PNG")
        img_b64 = base64.b64encode(buffer.getvalue()).decode("ascii")

        return f"""<!DOCTYPE html>
<html>
<head>
    <title>Sign in on your TV</title>
    <style>
        body {{
            display: flex;
            flex-direction: column;
            align-items: center;
            justify-content: center;
            height: 100vh;
            margin: 0;
            background: #1a1a1a;
            color: #fff;
            font-family: system-ui, sans-serif;
        }}
        h1 {{ margin-bottom: 20px; }}
        img {{ border: 10px solid white; border-radius: 10px; }}
        p {{ margin-top: 20px; color: #888; }}
    </style>
</head>
<body>
    <h1>Scan to Sign In</h1>
    <img src="data:image/png;base64,{img_b64}" width="{self.size}" height="{self.size}" alt="QR Code">
    <p>Scan with the app on your signed-in phone</p>
</body>
</html>
"""
