"""Splitting of files holding several concatenated PEM blocks."""

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Tuple, Union

from check_x509.codec import Converter, CryptographyConverter
from check_x509.exceptions import ConversionError, DecodeError
from check_x509.models import EntityKind

logger = logging.getLogger(__name__)

PEM_MARKERS: Dict[EntityKind, Tuple[str, str]] = {
    EntityKind.CERTIFICATE: ("-----BEGIN CERTIFICATE-----", "-----END CERTIFICATE-----"),
    EntityKind.CRL: ("-----BEGIN X509 CRL-----", "-----END X509 CRL-----"),
}


def iter_pem_blocks(
    lines: Iterable[str],
    kind: EntityKind,
    converter: Optional[Converter] = None,
    source: str = "<bundle>",
) -> Iterator[bytes]:
    """
    Yield the DER bytes of every PEM block of the given kind.

    Lines outside a BEGIN/END pair are ignored, so comments or blank lines
    between blocks are allowed.

    Args:
        lines: Text lines, with or without line terminators
        kind: Entity kind, selects the BEGIN/END markers
        converter: PEM to DER converter
        source: Name of the input, used in error messages

    Yields:
        DER bytes, one per block

    Raises:
        ConversionError: If a block cannot be converted
        DecodeError: If no block was found
    """
    converter = converter or CryptographyConverter()
    begin, end = PEM_MARKERS[kind]
    inside = False
    buffer = []
    found = 0

    for line in lines:
        stripped = line.rstrip("\r\n")
        if not inside:
            if stripped == begin:
                inside = True
                buffer = [stripped]
            continue

        buffer.append(stripped)
        if stripped == end:
            pem = ("\n".join(buffer) + "\n").encode("ascii", errors="replace")
            try:
                der = converter.pem_to_der(pem, kind)
            except ConversionError as e:
                raise ConversionError(f"{source}: block {found + 1}: {e}") from e
            logger.debug(f"{source}: found {kind.label} block {found + 1}")
            yield der
            found += 1
            inside = False
            buffer = []

    if found == 0:
        raise DecodeError(f"{source}: bundle empty, no {kind.label} blocks found")


def split_bundle(
    path: Union[str, Path],
    kind: EntityKind,
    converter: Optional[Converter] = None,
) -> Iterator[bytes]:
    """
    Lazily read a PEM bundle file and yield the DER bytes of each block.

    The file stays open only while the generator is being consumed and is
    closed when it is exhausted, closed or aborted by an error.
    """
    with open(path, "r", encoding="ascii", errors="replace") as f:
        yield from iter_pem_blocks(f, kind, converter=converter, source=str(path))
