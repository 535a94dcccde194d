from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class Outcome:
    """Typed result of a fallible operation: success flag, message, optional value."""
    success: bool
    message: Optional[str] = None
    value: Any = None
    # 'store', 'validation', 'not_found', 'closed', 'duplicate' or 'busy' on failure
    kind: Optional[str] = None

    @classmethod
    def ok(cls, value: Any = None, message: Optional[str] = None) -> 'Outcome':
        return cls(True, message, value)

    @classmethod
    def fail(cls, kind: str, message: str) -> 'Outcome':
        return cls(False, message, None, kind)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {'success': True, 'message': self.message}
        return {'success': False, 'error': self.message, 'kind': self.kind}
