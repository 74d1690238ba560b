from __future__ import annotations

from tripdesk.modules.imports.parsers.common import ParsedFile, ParsedImage, sniff_image_type


def parse_image(filename: str, content_type: str, body: bytes) -> ParsedFile:
    # The bytes decide the media type; a mislabeled upload is still usable.
    detected = sniff_image_type(body)
    if not detected:
        return ParsedFile.failure(filename, content_type, "File is not a PNG, JPEG or WebP image")
    return ParsedFile.success(
        filename, detected, images=[ParsedImage(media_type=detected, data=body)]
    )
