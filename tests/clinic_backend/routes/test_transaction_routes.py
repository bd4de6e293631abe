from datetime import date, time
from decimal import Decimal

import pytest
from fastapi import HTTPException

from clinic_backend.routes.transaction_routes import (
    CreateTransactionRequest,
    UpdateTransactionRequest,
    create_transaction,
    get_transaction,
    list_transactions,
    update_transaction,
)

MONDAY = date(2024, 1, 1)


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('clinic_backend.routes.transaction_routes.ensure_database_ready', lambda: None)


def test_create_transaction_for_unknown_appointment(db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_transaction(CreateTransactionRequest(appointment_id=5, amount=Decimal('10')), db=db_session)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Appointment not found'


def test_create_transaction_rejects_second_payment(db_session, patient, add_appointment) -> None:
    appointment = add_appointment(MONDAY, time(9, 0))

    transaction = create_transaction(
        CreateTransactionRequest(appointment_id=appointment.id, amount=Decimal('250.00'), payment_method='Cash'),
        db=db_session,
    )

    assert transaction.user_id == patient.id
    assert transaction.status == 'pending'

    with pytest.raises(HTTPException) as exception_info:
        create_transaction(CreateTransactionRequest(appointment_id=appointment.id, amount=Decimal('1')), db=db_session)

    assert exception_info.value.status_code == 409


def test_update_transaction_keeps_blank_fields(db_session, add_appointment) -> None:
    appointment = add_appointment(MONDAY, time(9, 0))
    transaction = create_transaction(
        CreateTransactionRequest(appointment_id=appointment.id, amount=Decimal('250.00'), notes='Front desk'),
        db=db_session,
    )

    updated = update_transaction(
        transaction.id,
        UpdateTransactionRequest(status='paid', notes=''),
        db=db_session,
    )

    assert updated.status == 'paid'
    assert updated.notes == 'Front desk'
    assert get_transaction(transaction.id, db=db_session).status == 'paid'


def test_get_unknown_transaction(db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_transaction(3, db=db_session)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Transaction not found'


def test_list_transactions_filters_by_method(db_session, add_appointment) -> None:
    cash = add_appointment(MONDAY, time(9, 0))
    online = add_appointment(MONDAY, time(9, 30))
    create_transaction(CreateTransactionRequest(appointment_id=cash.id, amount=Decimal('1'), payment_method='Cash'), db=db_session)
    create_transaction(CreateTransactionRequest(appointment_id=online.id, amount=Decimal('2')), db=db_session)

    page = list_transactions(transaction_status=None, payment_method='Cash', page=1, limit=10, db=db_session)

    assert page.total == 1
    assert page.data[0].appointment_id == cash.id
