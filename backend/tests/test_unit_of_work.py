from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.config import Settings
from app.errors import InternalError, InvalidAmount, ItemNotFound
from app.services.base import coerce_amount, run_unit_of_work


def _settings(attempts: int = 3) -> Settings:
    return Settings(db_retry_attempts=attempts, db_retry_backoff_seconds=[0.0])


def _locked() -> OperationalError:
    return OperationalError("UPDATE items", {}, Exception("database is locked"))


def test_commits_on_success():
    session = MagicMock()
    result = run_unit_of_work(session, lambda: "done", description="test", settings=_settings())
    assert result == "done"
    session.commit.assert_called_once_with()
    session.rollback.assert_not_called()


def test_retries_transient_errors_then_succeeds():
    session = MagicMock()
    outcomes = iter([_locked(), _locked(), "done"])

    def _operation():
        outcome = next(outcomes)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    assert run_unit_of_work(session, _operation, description="test", settings=_settings()) == "done"
    assert session.rollback.call_count == 2
    session.commit.assert_called_once_with()


def test_exhausted_retries_surface_as_internal_error():
    session = MagicMock()
    calls = []

    def _operation():
        calls.append(1)
        raise _locked()

    with pytest.raises(InternalError):
        run_unit_of_work(session, _operation, description="test", settings=_settings(attempts=2))
    assert len(calls) == 2
    session.commit.assert_not_called()


def test_domain_errors_roll_back_without_retry():
    session = MagicMock()
    calls = []

    def _operation():
        calls.append(1)
        raise ItemNotFound()

    with pytest.raises(ItemNotFound):
        run_unit_of_work(session, _operation, description="test", settings=_settings())
    assert len(calls) == 1
    session.rollback.assert_called_once_with()


def test_integrity_errors_retry_only_when_requested():
    session = MagicMock()
    error = IntegrityError("INSERT INTO orders", {}, Exception("UNIQUE constraint failed"))

    def _operation():
        raise error

    with pytest.raises(InternalError):
        run_unit_of_work(session, _operation, description="test", settings=_settings())
    assert session.rollback.call_count == 1

    session.reset_mock()
    with pytest.raises(InternalError):
        run_unit_of_work(
            session,
            _operation,
            description="test",
            retry_on=(OperationalError, IntegrityError),
            settings=_settings(),
        )
    assert session.rollback.call_count == 3


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (100.01, Decimal("100.01")),
        (5, Decimal("5")),
        (Decimal("0.0001"), Decimal("0.0001")),
        (Decimal("150.000000"), Decimal("150")),
        (Decimal("99999999999999.9999"), Decimal("99999999999999.9999")),
    ],
)
def test_coerce_amount_accepts_positive_numbers(raw, expected):
    assert coerce_amount(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [0, -1, Decimal("NaN"), float("-inf"), Decimal("0.00001"), False, "10", Decimal("100000000000000")],
)
def test_coerce_amount_rejects(raw):
    with pytest.raises(InvalidAmount):
        coerce_amount(raw)
