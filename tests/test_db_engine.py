"""
Tests for engine initialization and session_scope transaction handling.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from billing_kernel.db.engine import (
    get_engine,
    get_session,
    is_postgres,
    reset_engine,
    session_scope,
)
from billing_kernel.models.tariff import TariffModel
from tests.conftest import make_tariff


class TestUninitialized:

    def test_get_engine_before_init(self):
        reset_engine()
        with pytest.raises(RuntimeError):
            get_engine()
        with pytest.raises(RuntimeError):
            get_session()
        assert not is_postgres()


class TestSessionScope:

    def test_commits_on_success(self, engine):
        tariff = make_tariff()
        with session_scope() as session:
            session.add(TariffModel.from_dto(tariff))

        with session_scope() as session:
            row = session.get(TariffModel, tariff.tariff_id)
            assert row is not None
            assert row.fixed_charge == Decimal("2000")

    def test_rolls_back_on_error(self, engine):
        tariff = make_tariff(date(2030, 1, 1))
        with pytest.raises(ValueError):
            with session_scope() as session:
                session.add(TariffModel.from_dto(tariff))
                session.flush()
                raise ValueError("boom")

        with session_scope() as session:
            found = session.scalar(
                select(TariffModel.id).where(TariffModel.id == tariff.tariff_id)
            )
            assert found is None

    def test_is_postgres_matches_dialect(self, engine):
        assert is_postgres() == (get_engine().dialect.name == "postgresql")
