"""Per academic-type behaviour: period labels and numbering, plan context, term averages."""

from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from app.core.enums import AcademicType


def round_grade(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(value, 2)


class AcademicContext:
    academic_type: Optional[str] = None
    period_label_prefix = "Período"
    periods: Tuple[str, ...] = ()
    # Column on TeachingPlan/AnnualEnrollment/Section that carries the curriculum context
    context_field: Optional[str] = None

    def period_label(self, period: Optional[str]) -> str:
        if not period:
            return "Anual"
        return f"{self.period_label_prefix} {period}"

    def expand_periods(self, period: Optional[str]) -> List[Optional[str]]:
        """'todos'/'all' means every period of the academic type."""
        if period is None:
            return [None]
        if str(period).lower() in ("todos", "all"):
            return list(self.periods) or [None]
        return [str(period)]

    def context_id(self, section=None, annual_enrollment=None) -> Optional[UUID]:
        """Course (SUPERIOR) or class (SECUNDARIO) id: the section's first, the annual enrollment's second."""
        if self.context_field is None:
            return None
        for source in (section, annual_enrollment):
            if source is not None and getattr(source, self.context_field, None):
                return getattr(source, self.context_field)
        return None

    def term_averages(self, scored: Iterable[Tuple[Optional[int], float, float]]) -> Optional[Dict[str, float]]:
        return None


class SuperiorContext(AcademicContext):
    academic_type = AcademicType.SUPERIOR.value
    period_label_prefix = "Semestre"
    periods = ("1", "2")
    context_field = "course_id"


class SecundarioContext(AcademicContext):
    academic_type = AcademicType.SECUNDARIO.value
    period_label_prefix = "Trimestre"
    periods = ("1", "2", "3")
    context_field = "class_id"

    def term_averages(self, scored: Iterable[Tuple[Optional[int], float, float]]) -> Optional[Dict[str, float]]:
        """scored: (trimester, value, weight) for every graded assessment. Keys are trimester labels."""
        sums: Dict[int, List[float]] = {}
        for trimester, value, weight in scored:
            if trimester is None:
                continue
            acc = sums.setdefault(trimester, [0.0, 0.0])
            acc[0] += value * weight
            acc[1] += weight
        return {
            self.period_label(str(t)): round_grade(total / weight)
            for t, (total, weight) in sorted(sums.items())
            if weight > 0
        }


_CONTEXTS = {
    AcademicType.SUPERIOR.value: SuperiorContext(),
    AcademicType.SECUNDARIO.value: SecundarioContext(),
}


def get_academic_context(academic_type: Optional[str]) -> AcademicContext:
    """Unknown or unset type falls back to a neutral context (no curriculum filter, no term averages)."""
    if academic_type is None:
        return AcademicContext()
    return _CONTEXTS.get(str(academic_type), AcademicContext())
