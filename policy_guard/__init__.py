from .limits import RiskConfig, ValidationLimits
from .risk import RiskCheckResult, check_risk
from .validator import PolicyViolationError, ValidationResult, validate_strategy

__all__ = [
    "PolicyViolationError",
    "RiskCheckResult",
    "RiskConfig",
    "ValidationLimits",
    "ValidationResult",
    "check_risk",
    "validate_strategy",
]
