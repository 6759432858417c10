from fastapi import APIRouter, Depends, status

from opsdesk.api.deps import current_user, get_credit_notes, require_owner
from opsdesk.models.enums import CreditNoteStatus
from opsdesk.schemas.credit_note import CreditApplied, CreditApply, CreditNoteCreate, CreditNoteOut
from opsdesk.services.credit_notes import CreditNotes

router = APIRouter(prefix="/credit-notes", tags=["Credit Notes"], dependencies=[Depends(current_user)])


@router.get("", response_model=list[CreditNoteOut])
def list_credit_notes(
    status: CreditNoteStatus | None = None,
    customer_id: int | None = None,
    notes: CreditNotes = Depends(get_credit_notes),
):
    return notes.list(status=status, customer_id=customer_id)


@router.post("", response_model=CreditNoteOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_owner)])
def create_credit_note(payload: CreditNoteCreate, notes: CreditNotes = Depends(get_credit_notes)):
    return notes.create(payload.model_dump(exclude_none=True))


@router.get("/{note_id}", response_model=CreditNoteOut)
def get_credit_note(note_id: int, notes: CreditNotes = Depends(get_credit_notes)):
    return notes.get(note_id)


@router.post("/{note_id}/apply", response_model=CreditApplied, dependencies=[Depends(require_owner)])
def apply_credit_note(note_id: int, payload: CreditApply, notes: CreditNotes = Depends(get_credit_notes)):
    note, invoice = notes.apply(note_id, payload.invoice_id, payload.amount)
    return {"credit_note": note, "invoice": invoice}


@router.post("/{note_id}/cancel", response_model=CreditNoteOut, dependencies=[Depends(require_owner)])
def cancel_credit_note(note_id: int, notes: CreditNotes = Depends(get_credit_notes)):
    return notes.cancel(note_id)
