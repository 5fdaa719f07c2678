"""
Logging and QA module

Records dangling references, lossy dialect conversions and invalid values
as structured warnings, and mirrors them to the standard logging output
"""
import logging
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class ConversionWarning:
    """Warning during conversion"""
    element_id: Optional[str]
    warning_type: str  # 'missing_reference', 'unsupported_relationship_shape', 'invalid_value', etc.
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


class ConversionLogger:
    """Logger for conversion process"""

    def __init__(self, warn_lossy: bool = True):
        """
        Args:
            warn_lossy: Whether to record warnings for data the target dialect cannot hold
        """
        self.warn_lossy = warn_lossy
        self.warnings: List[ConversionWarning] = []
        self.logger = logging.getLogger('erdxml')

        # Logger configuration (default)
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def _record(self, element_id: Optional[str], warning_type: str, message: str, details: Dict[str, Any]):
        warning = ConversionWarning(
            element_id=element_id,
            warning_type=warning_type,
            message=message,
            details=details
        )
        self.warnings.append(warning)
        self.logger.warning(f"[{element_id}] {message}")

    def warn_missing_reference(self, element_id: Optional[str], field_name: str, ref_id: Optional[str]):
        """Record warning for a reference to an id not present in the document"""
        message = f"Missing reference: {field_name}={ref_id!r}"
        self._record(element_id, 'missing_reference', message, {
            'field': field_name,
            'ref_id': ref_id,
        })

    def warn_relationship_degraded(self, element_id: Optional[str], participants: int, cardinalities: List[str]):
        """Record warning for a relationship written as NToN with its total participation dropped"""
        if not self.warn_lossy:
            return
        message = (
            f"Relationship with {participants} participant(s) and cardinalities "
            f"{'/'.join(cardinalities) or '-'} written as NToN; total participation dropped"
        )
        self._record(element_id, 'unsupported_relationship_shape', message, {
            'participants': participants,
            'cardinalities': cardinalities,
        })

    def warn_invalid_value(self, element_id: Optional[str], field_name: str, value: Any, fallback: Any):
        """Record warning for a value replaced by its default"""
        message = f"Invalid value for {field_name}: {value!r} (replaced with {fallback!r})"
        self._record(element_id, 'invalid_value', message, {
            'field': field_name,
            'value': value,
            'fallback': fallback,
        })

    def warn_lossy_conversion(self, element_id: Optional[str], what: str, target: str):
        """Record warning for data dropped because the target dialect cannot represent it"""
        if not self.warn_lossy:
            return
        message = f"Not representable in {target}: {what}"
        self._record(element_id, 'lossy_conversion', message, {
            'what': what,
            'target': target,
        })

    def warn_unknown_root(self, root_tag: str):
        """Record warning for a document whose root tag names no known dialect"""
        message = f"Unrecognized root element <{root_tag}>; reading as standard format"
        self._record(None, 'unknown_root', message, {'root_tag': root_tag})

    def info(self, message: str):
        """Info log"""
        self.logger.info(message)

    def debug(self, message: str):
        """Debug log"""
        self.logger.debug(message)

    def get_warnings(self, warning_type: Optional[str] = None) -> List[ConversionWarning]:
        """Get warning list, optionally filtered by type"""
        if warning_type is None:
            return self.warnings
        return [w for w in self.warnings if w.warning_type == warning_type]
