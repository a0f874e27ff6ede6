from decimal import Decimal

from src.core.barter.models import EngineError, EngineErrorKind


class LineageRepositoryError(Exception):
    pass


class LineageNotFoundError(LineageRepositoryError):
    pass


class LineageVersionConflictError(LineageRepositoryError):
    pass


def format_amount(value: Decimal) -> str:
    return str(value.quantize(Decimal("0.01")))


def _error(kind: EngineErrorKind, code: str, message: str, details: dict) -> EngineError:
    return EngineError(
        kind=kind,
        code=code,
        message=message,
        details={key: str(value) for key, value in details.items() if value is not None},
    )


def structural_error(code: str, message: str, **details) -> EngineError:
    return _error("STRUCTURAL", code, message, details)


def settlement_violation(code: str, message: str, **details) -> EngineError:
    return _error("SETTLEMENT_VIOLATION", code, message, details)


def negotiation_state_error(code: str, message: str, **details) -> EngineError:
    return _error("NEGOTIATION_STATE", code, message, details)


def lineage_error(code: str, message: str, **details) -> EngineError:
    return _error("LINEAGE", code, message, details)
