"""
Exceptions raised by the interchange layer
"""
from typing import Optional


class InterchangeError(Exception):
    """Base class for erdxml errors"""


class MalformedDocument(InterchangeError):
    """XML that is not well-formed, or a document of the wrong dialect"""

    def __init__(self, message: str, detail: Optional[str] = None):
        self.detail = detail
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MissingRequiredReference(InterchangeError):
    """An element references an id that is not present in the document.

    Only raised when ``ConversionConfig.strict_references`` is set; by default
    the reference is recorded as a warning and parsing continues.
    """

    def __init__(self, element_id: Optional[str], field_name: str, ref_id: Optional[str]):
        self.element_id = element_id
        self.field_name = field_name
        self.ref_id = ref_id
        super().__init__(f"[{element_id}] {field_name} references unknown id {ref_id!r}")


class UnserializableText(InterchangeError):
    """A string in the diagram cannot be written as XML 1.0 (e.g. control characters)"""

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        message = "Diagram contains text that cannot be written as XML"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
