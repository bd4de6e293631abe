from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.models.appointment import Appointment
from clinic_backend.models.transaction import Transaction
from clinic_backend.routes.appointment_routes import TransactionResponse
from clinic_backend.routes.common import database_unavailable, ensure_database_ready, get_db, paginate

router = APIRouter(tags=['transactions'])


class CreateTransactionRequest(BaseModel):
    appointment_id: int
    amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    payment_method: str = config.DEFAULT_PAYMENT_METHOD
    status: str = 'pending'
    transaction_reference: str | None = None
    notes: str | None = None


class UpdateTransactionRequest(BaseModel):
    status: str | None = None
    payment_method: str | None = None
    transaction_reference: str | None = None
    notes: str | None = None


class TransactionPageResponse(BaseModel):
    data: list[TransactionResponse]
    total: int
    current_page: int
    last_page: int
    per_page: int


def _get_transaction_or_404(transaction_id: int, db: Session) -> Transaction:
    transaction = db.get(Transaction, transaction_id)
    if not transaction:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Transaction not found',
        )
    return transaction


@router.post('', response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(data: CreateTransactionRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = db.get(Appointment, data.appointment_id)
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Appointment not found',
            )

        existing = db.query(Transaction).filter(Transaction.appointment_id == data.appointment_id).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Transaction already exists for this appointment',
            )

        transaction = Transaction(
            user_id=appointment.user_id,
            appointment_id=appointment.id,
            amount=data.amount,
            payment_method=data.payment_method,
            status=data.status,
            transaction_reference=data.transaction_reference,
            notes=data.notes,
        )
        db.add(transaction)
        db.commit()
        db.refresh(transaction)

        return transaction
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('', response_model=TransactionPageResponse)
def list_transactions(
    transaction_status: str | None = Query(default=None, alias='status'),
    payment_method: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=config.DEFAULT_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Transaction)
        if transaction_status:
            query = query.filter(Transaction.status == transaction_status)
        if payment_method:
            query = query.filter(Transaction.payment_method == payment_method)

        result = paginate(query.order_by(Transaction.created_at.desc(), Transaction.id.desc()), page, limit)

        return TransactionPageResponse(
            data=[TransactionResponse.model_validate(row) for row in result['rows']],
            total=result['total'],
            current_page=result['current_page'],
            last_page=result['last_page'],
            per_page=result['per_page'],
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{transaction_id}', response_model=TransactionResponse)
def get_transaction(transaction_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return _get_transaction_or_404(transaction_id, db)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{transaction_id}', response_model=TransactionResponse)
def update_transaction(transaction_id: int, data: UpdateTransactionRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        transaction = _get_transaction_or_404(transaction_id, db)

        for field_name, value in data.model_dump(exclude_unset=True).items():
            if value:
                setattr(transaction, field_name, value)

        db.commit()
        db.refresh(transaction)

        return transaction
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
