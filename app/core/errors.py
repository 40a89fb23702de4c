from typing import Any, Optional


class ValidationError(ValueError):
    """Input rejected before any write. The caller may retry with corrected data."""

    code = "VALIDACAO"

    def __init__(self, message: str, **fields: Any) -> None:
        super().__init__(message)
        self.message = message
        self.fields = fields

    @property
    def detail(self) -> dict:
        return {"code": self.code, "message": self.message, **self.fields}


class JustificationRequiredError(ValidationError):
    code = "JUSTIFICATIVA_OBRIGATORIA"

    def __init__(self, missing_count: int) -> None:
        super().__init__(
            f"Faltam {missing_count} foto(s). Informe uma justificativa para continuar.",
            missing_count=missing_count,
        )
        self.missing_count = missing_count


class RouteLockedError(ValidationError):
    code = "ROTA_ENCERRADA"


class InvalidTransitionError(ValidationError):
    code = "TRANSICAO_INVALIDA"


class ReferentialError(ValueError):
    """A referenced supplier/store/employee does not exist or belongs elsewhere."""

    code = "REFERENCIA_INVALIDA"

    def __init__(self, message: str, keys: Optional[list] = None) -> None:
        super().__init__(message)
        self.message = message
        self.keys = list(keys or [])

    @property
    def detail(self) -> dict:
        return {"code": self.code, "message": self.message, "keys": self.keys}


class PersistenceError(Exception):
    """Atomic replace failed midway; nothing from the request should be considered saved."""
