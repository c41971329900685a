from __future__ import annotations

import io

from PIL import Image, ImageChops


NEAR_WHITE_THRESHOLD = 240


def _channel_mask(channel: Image.Image, threshold: int) -> Image.Image:
    return channel.point(lambda value: 255 if value > threshold else 0)


def snap_near_white(png: bytes, threshold: int = NEAR_WHITE_THRESHOLD) -> bytes:
    """Force pixels whose R, G and B all exceed ``threshold`` to pure white."""
    with Image.open(io.BytesIO(png)) as source:
        source.load()
        has_alpha = source.mode in ('RGBA', 'LA') or 'transparency' in source.info
        image = source.convert('RGBA' if has_alpha else 'RGB')

    channels = image.split()
    red, green, blue = channels[:3]
    mask = ImageChops.multiply(
        ImageChops.multiply(_channel_mask(red, threshold), _channel_mask(green, threshold)),
        _channel_mask(blue, threshold),
    )
    rgb = Image.merge('RGB', (red, green, blue))
    rgb.paste((255, 255, 255), mask=mask)
    if has_alpha:
        rgb = Image.merge('RGBA', (*rgb.split(), channels[3]))

    buffer = io.BytesIO()
    rgb.save(buffer, format='PNG')
    return buffer.getvalue()


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as image:
        return image.size
