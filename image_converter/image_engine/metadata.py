"""EXIF tag composition and embedding.

`compose_exif` names the IFD0 tags as plain strings so the mapping can be
checked without a codec. `prepare_metadata` turns them into a complete EXIF
block with piexif, merged over the EXIF the source already carried, and
`embed_exif` splices that block into the encoded file.

The block is spliced in after encoding: libvips rebuilds EXIF on save from its
``exif-ifd0-*`` fields, which cannot express ProcessingSoftware and cut values
at the first " (".
"""

from __future__ import annotations

import io
import struct
import zlib
from dataclasses import dataclass
from typing import Any

import piexif

from image_converter.errors import EncodeFailure
from image_converter.logger import get_logger
from image_converter.settings_manager import PRODUCT_ID, Metadata

from . import decoder

_logger = get_logger("metadata")

COMMENT_FIELD = "png-comment-0-Comment"
COMMENT_TEXT = f"Created by {PRODUCT_ID}"
DESCRIPTION_FIELD = "image-description"
EXIF_FIELD = "exif-data"

# Containers that take a full EXIF block; tiff keeps the description only
EXIF_FORMATS = frozenset({"jpeg", "png", "webp"})

ASCII_TAGS = {
    "ImageDescription": piexif.ImageIFD.ImageDescription,
    "Artist": piexif.ImageIFD.Artist,
    "ProcessingSoftware": piexif.ImageIFD.ProcessingSoftware,
    "Software": piexif.ImageIFD.Software,
    "Copyright": piexif.ImageIFD.Copyright,
}
# Windows XP tags: UTF-16LE text, NUL terminated, stored as BYTE arrays
XP_TAGS = {
    "XPTitle": piexif.ImageIFD.XPTitle,
    "XPAuthor": piexif.ImageIFD.XPAuthor,
    "XPKeywords": piexif.ImageIFD.XPKeywords,
}

_EXIF_HEADER = b"Exif\x00\x00"
_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@dataclass(frozen=True)
class EmbeddedMetadata:
    exif: bytes
    description: str | None = None


def compose_exif(metadata: Metadata | None) -> dict[str, dict[str, str]] | None:
    """Build ``{"IFD0": {tag: value}}`` from `metadata`, or None when it is empty.

    Title and keywords are only written when origin and keywords are both set.
    """
    if metadata is None or metadata.is_empty():
        return None

    ifd0: dict[str, str] = {}
    if metadata.description:
        ifd0["ImageDescription"] = metadata.description
    if metadata.author:
        ifd0["Artist"] = metadata.author
        ifd0["XPAuthor"] = metadata.author
        ifd0["ProcessingSoftware"] = PRODUCT_ID
        ifd0["Software"] = PRODUCT_ID
    if metadata.copyright:
        ifd0["Copyright"] = metadata.copyright
    if metadata.origin and metadata.keywords:
        ifd0["XPTitle"] = metadata.origin
        ifd0["XPKeywords"] = metadata.keywords
    elif metadata.origin or metadata.keywords:
        _logger.debug("origin/keywords dropped: both are needed to write title and keywords")

    if not ifd0:
        return None
    return {"IFD0": ifd0}


def encode_xp(text: str) -> bytes:
    return text.encode("utf-16-le") + b"\x00\x00"


def decode_xp(value: bytes | tuple[int, ...]) -> str:
    return bytes(value).decode("utf-16-le").rstrip("\x00")


def ifd0_entries(tags: dict[str, dict[str, str]] | None) -> dict[int, bytes]:
    """Composed tags as piexif ``0th`` entries, keyed by numeric tag id."""
    entries: dict[int, bytes] = {}
    for name, value in (tags or {}).get("IFD0", {}).items():
        if name in XP_TAGS:
            entries[XP_TAGS[name]] = encode_xp(value)
        else:
            entries[ASCII_TAGS[name]] = value.encode("utf-8")
    return entries


def _load_source_exif(blob: bytes) -> dict[str, Any] | None:
    try:
        exif = piexif.load(blob)
    except Exception as e:
        # piexif raises assorted errors for damaged blocks
        _logger.warning("source EXIF ignored: %s", e)
        return None
    # thumbnail and orientation are stale after resize and auto-rotate
    exif["1st"] = {}
    exif["thumbnail"] = None
    if piexif.ImageIFD.Orientation in exif["0th"]:
        exif["0th"][piexif.ImageIFD.Orientation] = 1
    return exif


def build_exif(tags: dict[str, dict[str, str]] | None, source_exif: bytes | None = None) -> bytes:
    """Dump the composed tags as an EXIF block, keeping the other tags of `source_exif`."""
    entries = ifd0_entries(tags)
    merged = _load_source_exif(source_exif) if source_exif else None
    if merged is not None:
        merged["0th"].update(entries)
        try:
            return piexif.dump(merged)
        except Exception as e:
            _logger.warning("source EXIF dropped, it cannot be re-encoded: %s", e)
    return piexif.dump({"0th": entries})


def prepare_metadata(image: Any, tags: dict[str, dict[str, str]] | None) -> EmbeddedMetadata | None:
    if not tags:
        return None
    source_exif = decoder.get_blob_field(image, EXIF_FIELD)
    return EmbeddedMetadata(
        exif=build_exif(tags, source_exif),
        description=tags["IFD0"].get("ImageDescription"),
    )


def apply_text_fields(image: Any, embedded: EmbeddedMetadata | None) -> Any:
    """Set the plain-text fields savers write themselves (tiff description, png comment)."""
    if embedded is None:
        return image
    if embedded.description:
        image = decoder.set_string_field(image, DESCRIPTION_FIELD, embedded.description)
    return decoder.set_string_field(image, COMMENT_FIELD, COMMENT_TEXT)


def _png_chunk(kind: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(kind + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", crc)


def _png_with_exif(data: bytes, tiff_exif: bytes) -> bytes:
    """Replace any eXIf chunk with `tiff_exif`, placed before the first IDAT."""
    if not data.startswith(_PNG_SIGNATURE):
        raise EncodeFailure("cannot embed EXIF: not a PNG stream")
    out = [_PNG_SIGNATURE]
    pos = len(_PNG_SIGNATURE)
    placed = False
    while pos + 8 <= len(data):
        length, kind = struct.unpack(">I4s", data[pos : pos + 8])
        end = pos + 12 + length
        if kind == b"IDAT" and not placed:
            out.append(_png_chunk(b"eXIf", tiff_exif))
            placed = True
        if kind != b"eXIf":
            out.append(data[pos:end])
        pos = end
    if not placed:
        raise EncodeFailure("cannot embed EXIF: PNG stream has no image data")
    return b"".join(out)


def embed_exif(data: bytes, fmt: str, embedded: EmbeddedMetadata | None) -> bytes:
    """Return the encoded `data` with the EXIF block of `embedded` in place of any existing one."""
    if embedded is None:
        return data
    if fmt not in EXIF_FORMATS:
        _logger.debug("%s output carries no EXIF block", fmt)
        return data
    if fmt == "png":
        return _png_with_exif(data, embedded.exif[len(_EXIF_HEADER) :])
    out = io.BytesIO()
    try:
        piexif.insert(embedded.exif, data, out)
    except (ValueError, struct.error) as e:
        raise EncodeFailure(f"cannot embed EXIF in {fmt}: {e}") from e
    return out.getvalue()
