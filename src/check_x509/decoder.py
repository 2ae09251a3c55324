"""Decoding of entity files in PEM, DER or bundle format."""

import logging
from contextlib import closing
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from check_x509.bundle import iter_pem_blocks, split_bundle
from check_x509.codec import Converter, CryptographyConverter, CryptographyDecoder, Decoder
from check_x509.models import DecodedEntity, EntityFormat, EntityKind

logger = logging.getLogger(__name__)


def _decode_all(
    ders: Iterable[bytes], kind: EntityKind, decoder: Decoder
) -> Iterator[DecodedEntity]:
    for index, der in enumerate(ders):
        yield decoder.decode_der(der, kind, index=index)


def decode(
    raw: bytes,
    fmt: EntityFormat,
    kind: EntityKind,
    converter: Optional[Converter] = None,
    decoder: Optional[Decoder] = None,
    source: str = "<bytes>",
) -> List[DecodedEntity]:
    """
    Decode raw entity bytes into one or more decoded entities.

    Args:
        raw: File contents
        fmt: Declared format of the contents
        kind: Certificate or CRL
        converter: PEM to DER converter (cryptography by default)
        decoder: DER decoder (cryptography by default)
        source: Name of the input, used in error messages

    Returns:
        One DecodedEntity for PEM and DER, one per block for bundles

    Raises:
        ConversionError: PEM data could not be converted
        DecodeError: DER data could not be decoded, or the bundle is empty
    """
    converter = converter or CryptographyConverter()
    decoder = decoder or CryptographyDecoder()

    if fmt is EntityFormat.PEM:
        return [decoder.decode_der(converter.pem_to_der(raw, kind), kind)]
    if fmt is EntityFormat.DER:
        return [decoder.decode_der(raw, kind)]

    lines = raw.decode("ascii", errors="replace").splitlines()
    return list(_decode_all(iter_pem_blocks(lines, kind, converter, source=source), kind, decoder))


def decode_file(
    path: Union[str, Path],
    fmt: EntityFormat,
    kind: EntityKind,
    converter: Optional[Converter] = None,
    decoder: Optional[Decoder] = None,
) -> Iterator[DecodedEntity]:
    """
    Decode an entity file, streaming bundles block by block.

    OSError from reading the file is left to the caller.
    """
    converter = converter or CryptographyConverter()
    decoder = decoder or CryptographyDecoder()

    if fmt is EntityFormat.BUNDLE:
        logger.debug(f"Reading {path} as {kind.label} bundle")
        blocks = split_bundle(path, kind, converter)
        with closing(blocks):
            yield from _decode_all(blocks, kind, decoder)
        return

    with open(path, "rb") as f:
        raw = f.read()
    logger.debug(f"Read {len(raw)} bytes from {path} ({fmt.value.upper()})")
    yield from decode(raw, fmt, kind, converter, decoder, source=str(path))
