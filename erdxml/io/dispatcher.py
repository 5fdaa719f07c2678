"""
Format dispatcher

The single public parse entry point: sniffs the root tag and routes to the codec
of that dialect. Format detection lives only here.
"""
from enum import Enum
from typing import Optional

from ..config import ConversionConfig
from ..logger import ConversionLogger
from ..model.diagram import Diagram
from . import legacy_codec, standard_codec
from .legacy_codec import LegacyCodec
from .standard_codec import StandardCodec
from .xml_utils import local_tag, parse_xml


class DiagramFormat(str, Enum):
    STANDARD = "standard"
    LEGACY = "legacy"


def _format_of_root(tag: str) -> Optional[DiagramFormat]:
    if tag == legacy_codec.ROOT_TAG:
        return DiagramFormat.LEGACY
    if tag == standard_codec.ROOT_TAG:
        return DiagramFormat.STANDARD
    return None


def detect_format(text: str) -> DiagramFormat:
    """
    Dialect of an XML document, read from its root tag

    Unknown roots are reported as STANDARD (documents written before the root was tagged).

    Raises:
        MalformedDocument: When the text is not well-formed XML
    """
    return _format_of_root(local_tag(parse_xml(text))) or DiagramFormat.STANDARD


def parse(
    text: str,
    logger: Optional[ConversionLogger] = None,
    config: Optional[ConversionConfig] = None,
) -> Diagram:
    """
    Parse a diagram document of either dialect

    Args:
        text: XML document
        logger: ConversionLogger that receives the conversion warnings
        config: ConversionConfig instance (uses default_config if None)

    Returns:
        Newly built Diagram

    Raises:
        MalformedDocument: Not well-formed XML, or a legacy document without its schema section
    """
    logger = logger or ConversionLogger()
    root = parse_xml(text)
    tag = local_tag(root)
    fmt = _format_of_root(tag)

    if fmt is DiagramFormat.LEGACY:
        return LegacyCodec(logger=logger, config=config).decode_element(root)
    if fmt is None:
        logger.warn_unknown_root(tag)
        return StandardCodec(logger=logger, config=config).decode_element(root, strict_root=False)
    return StandardCodec(logger=logger, config=config).decode_element(root)


def serialize(
    diagram: Diagram,
    fmt: DiagramFormat = DiagramFormat.STANDARD,
    logger: Optional[ConversionLogger] = None,
    config: Optional[ConversionConfig] = None,
) -> str:
    """Serialize ``diagram`` in the requested dialect"""
    fmt = DiagramFormat(fmt)
    if fmt is DiagramFormat.LEGACY:
        return LegacyCodec(logger=logger, config=config).encode(diagram)
    return StandardCodec(logger=logger, config=config).encode(diagram)
