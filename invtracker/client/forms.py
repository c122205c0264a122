"""
Form logic for creating and renewing investments.

:func:`validate_investment` is the one validation predicate shared by both
forms.  A form that fails validation raises
:class:`ValidationFailedException` and never reaches the controller, so an
invalid record is never sent over the network.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Set

from pydantic import BaseModel

from invtracker.core.dates import as_utc, midnight_utc, parse_date_input
from invtracker.core.exceptions import ValidationFailedException
from invtracker.schemas.investment import InvestmentPatch, InvestmentResponse

if TYPE_CHECKING:
    from invtracker.client.controller import InvestmentController

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("investment_name", "holder_name", "investment_kind", "return_kind")
AMOUNT_FIELDS = ("investment_amount", "return_amount", "return_rate")
DATE_FIELDS = ("start_date", "end_date")
FORM_FIELDS = DATE_FIELDS + TEXT_FIELDS + AMOUNT_FIELDS

FIELD_LABELS: Dict[str, str] = {
    "investment_name": "Investment Name",
    "holder_name": "Name",
    "investment_kind": "Investment Type",
    "return_kind": "Return Type",
    "investment_amount": "Investment Amount",
    "return_amount": "Return Amount",
    "return_rate": "Return Rate",
    "start_date": "Start Date",
    "end_date": "End Date",
}


class InvestmentDraft(BaseModel):
    """A candidate investment as edited in a form; blank until filled in."""

    id: Optional[str] = None
    investment_name: str = ""
    holder_name: str = ""
    investment_kind: str = ""
    return_kind: str = ""
    investment_amount: int = 0
    return_amount: int = 0
    return_rate: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: InvestmentResponse) -> "InvestmentDraft":
        return cls(**record.model_dump(include=set(cls.model_fields)))

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for ``POST /inv`` (no id: the store assigns it)."""
        return self.model_dump(mode="json", exclude={"id"})


def validate_investment(
    draft: InvestmentDraft, fields: Optional[Iterable[str]] = None
) -> Dict[str, str]:
    """
    Check a draft for completeness.

    Returns ``{field: message}`` for every violated rule, in form order; an
    empty dict means the draft may be submitted.  ``fields`` limits the
    check to the fields being edited; by default every field is checked.
    """
    wanted = set(FORM_FIELDS if fields is None else fields)
    errors: Dict[str, str] = {}

    for name in FORM_FIELDS:
        if name not in wanted:
            continue
        value = getattr(draft, name)
        label = FIELD_LABELS[name]
        if name in TEXT_FIELDS and not value.strip():
            errors[name] = f"{label} cannot be blank"
        elif name in AMOUNT_FIELDS and value == 0:
            errors[name] = f"{label} cannot be blank"
        elif name in AMOUNT_FIELDS and value < 0:
            errors[name] = f"{label} cannot be negative"
        elif name in DATE_FIELDS and value is None:
            errors[name] = f"{label} cannot be blank"

    if (
        "end_date" in wanted
        and "end_date" not in errors
        and draft.start_date is not None
        and draft.end_date is not None
        and as_utc(draft.end_date) < as_utc(draft.start_date)
    ):
        errors["end_date"] = "End Date cannot be before Start Date"

    return errors


def coerce_field(name: str, raw: Any) -> Any:
    """
    Convert raw widget input for ``name`` into the draft's type.

    Numbers that do not parse become 0 and dates that do not parse become
    ``None``, so they then fail validation as blank.
    """
    if name in TEXT_FIELDS:
        return "" if raw is None else str(raw)
    if name in AMOUNT_FIELDS:
        if isinstance(raw, int) and not isinstance(raw, bool):
            return raw
        try:
            return int(str(raw).strip())
        except ValueError:
            return 0
    if name in DATE_FIELDS:
        if raw is None:
            return None
        if isinstance(raw, date):
            return midnight_utc(raw)
        return parse_date_input(str(raw))
    raise ValueError(f"Unknown investment field: {name!r}")


class InvestmentForm:
    """State shared by the create and renew forms: a draft plus field errors."""

    def __init__(self, draft: InvestmentDraft) -> None:
        self.draft = draft
        self.errors: Dict[str, str] = {}

    def set_field(self, name: str, raw: Any) -> None:
        """Store an edited value and drop that field's error immediately."""
        setattr(self.draft, name, coerce_field(name, raw))
        self.errors.pop(name, None)

    def validate(self, fields: Optional[Iterable[str]] = None) -> bool:
        self.errors = validate_investment(self.draft, fields)
        return not self.errors

    def _require_valid(self) -> None:
        if not self.validate():
            logger.debug("Form rejected: %s", self.errors)
            raise ValidationFailedException(self.errors)


class CreateInvestmentForm(InvestmentForm):
    """Form for a new investment; starts blank and resets after a save."""

    def __init__(self) -> None:
        super().__init__(InvestmentDraft())

    def reset(self) -> None:
        self.draft = InvestmentDraft()
        self.errors = {}

    async def submit(self, controller: "InvestmentController") -> Optional[InvestmentResponse]:
        """
        Validate and create.

        Raises :class:`ValidationFailedException` without calling the
        controller when the draft is incomplete.  Returns the stored record,
        or ``None`` if the backend call failed (the form keeps its values).
        """
        self._require_valid()
        created = await controller.create(self.draft)
        if created is not None:
            self.reset()
        return created


class RenewInvestmentForm(InvestmentForm):
    """
    Form for editing / renewing an existing investment.

    Saving is only possible once a field has been edited (:attr:`changed`);
    the patch sent contains just the edited fields.
    """

    def __init__(self, record: InvestmentResponse) -> None:
        super().__init__(InvestmentDraft.from_record(record))
        self.record = record
        self._edited: Set[str] = set()

    @property
    def changed(self) -> bool:
        return bool(self._edited)

    def set_field(self, name: str, raw: Any) -> None:
        super().set_field(name, raw)
        self._edited.add(name)

    def build_patch(self) -> InvestmentPatch:
        changes = {name: getattr(self.draft, name) for name in sorted(self._edited)}
        return InvestmentPatch(id=self.record.id, **changes)

    async def submit(self, controller: "InvestmentController") -> Optional[InvestmentResponse]:
        """
        Validate the whole edited record and send the changes.

        Returns ``None`` without any network call when nothing was edited.
        Raises :class:`ValidationFailedException` for an incomplete record.
        """
        if not self.changed:
            return None
        self._require_valid()
        updated = await controller.renew(self.build_patch())
        if updated is not None:
            self.record = updated
            self.draft = InvestmentDraft.from_record(updated)
            self._edited.clear()
        return updated
