"""Photo evidence rules for an installation submission.

Every installation needs the four fixed store photos taken before the work plus
one final photo per kit. Missing photos are tolerated only when the installer
explains why.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from app.core.errors import JustificationRequiredError

FRENTE_LOJA = "frente_loja"
INTERNA_LOJA = "interna_loja"
INTERNA_LADO_DIREITO = "interna_lado_direito"
INTERNA_LADO_ESQUERDO = "interna_lado_esquerdo"

ORIGINAL_SLOTS = (FRENTE_LOJA, INTERNA_LOJA, INTERNA_LADO_DIREITO, INTERNA_LADO_ESQUERDO)


@dataclass(frozen=True)
class EvidenceReport:
    missing_count: int
    justified: bool


def is_filled(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        stripped = value.strip()
        return bool(stripped) and stripped.lower() != "null"
    # anything that is not a string is a freshly captured file
    return True


def count_missing(original_slots: Iterable, final_slots: Iterable) -> int:
    return sum(1 for value in original_slots if not is_filled(value)) + sum(
        1 for value in final_slots if not is_filled(value)
    )


def check_evidence(
    original_slots: Iterable,
    final_slots: Iterable,
    justification: Optional[str] = None,
) -> EvidenceReport:
    missing = count_missing(original_slots, final_slots)
    justified = bool((justification or "").strip())
    if missing > 0 and not justified:
        raise JustificationRequiredError(missing)
    return EvidenceReport(missing_count=missing, justified=justified)
