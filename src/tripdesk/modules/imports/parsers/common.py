from __future__ import annotations

from dataclasses import dataclass, field

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV = "text/csv"
PNG = "image/png"
JPEG = "image/jpeg"
WEBP = "image/webp"

ALLOWED_CONTENT_TYPES = frozenset({PDF, DOCX, XLSX, CSV, PNG, JPEG, WEBP})
IMAGE_CONTENT_TYPES = frozenset({PNG, JPEG, WEBP})

_EXTENSION_TYPES = {
    ".pdf": PDF,
    ".docx": DOCX,
    ".xlsx": XLSX,
    ".csv": CSV,
    ".png": PNG,
    ".jpg": JPEG,
    ".jpeg": JPEG,
    ".webp": WEBP,
}

# Browsers disagree on CSV and JPEG labels.
_CONTENT_TYPE_ALIASES = {
    "application/csv": CSV,
    "text/comma-separated-values": CSV,
    "image/jpg": JPEG,
    "image/pjpeg": JPEG,
}


@dataclass(frozen=True)
class ParsedImage:
    media_type: str
    data: bytes


@dataclass
class ParsedFile:
    filename: str
    content_type: str | None
    status: str
    text: str = ""
    images: list[ParsedImage] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def success(
        cls,
        filename: str,
        content_type: str | None,
        *,
        text: str = "",
        images: list[ParsedImage] | None = None,
    ) -> ParsedFile:
        return cls(
            filename=filename,
            content_type=content_type,
            status="success",
            text=text,
            images=list(images or []),
        )

    @classmethod
    def failure(cls, filename: str, content_type: str | None, error: str) -> ParsedFile:
        return cls(filename=filename, content_type=content_type, status="error", error=error)


def clean_text(text: str) -> str:
    t = (text or "").replace("\u202f", " ").replace("\xa0", " ").replace("\r\n", "\n")
    lines = [ln.rstrip() for ln in t.split("\n")]
    out: list[str] = []
    blank = False
    for ln in lines:
        if not ln.strip():
            if not blank and out:
                out.append("")
            blank = True
            continue
        out.append(ln)
        blank = False
    return "\n".join(out).strip()


def looks_like_pdf_bytes(body: bytes) -> bool:
    if not body:
        return False
    b = body.lstrip()
    if b.startswith(b"\xef\xbb\xbf"):
        b = b[3:].lstrip()
    return b.startswith(b"%PDF")


def sniff_image_type(body: bytes) -> str | None:
    if not body:
        return None
    if body.startswith(b"\x89PNG\r\n\x1a\n"):
        return PNG
    if body.startswith(b"\xff\xd8\xff"):
        return JPEG
    if len(body) >= 12 and body.startswith(b"RIFF") and body[8:12] == b"WEBP":
        return WEBP
    return None


def resolve_content_type(filename: str, content_type: str | None, body: bytes) -> str | None:
    """Map an upload to one of the allowed types, or None when unsupported."""
    declared = (content_type or "").split(";")[0].strip().lower()
    declared = _CONTENT_TYPE_ALIASES.get(declared, declared)
    if declared in ALLOWED_CONTENT_TYPES:
        return declared

    name = (filename or "").lower()
    for ext, mapped in _EXTENSION_TYPES.items():
        if name.endswith(ext):
            return mapped

    if looks_like_pdf_bytes(body):
        return PDF
    return sniff_image_type(body)
