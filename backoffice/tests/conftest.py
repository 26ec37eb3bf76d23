# backoffice/tests/conftest.py
import os
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from backoffice.main import app
from backoffice.database.db import Base, get_db
from backoffice.models.models import Account, Category, Creditor, Financing, User
from backoffice.utils.auth import create_access_token

# Usá SQLite en archivo para evitar problemas de conexión en memoria
TEST_DB_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///./test_unit.db")

# ---------- ENGINE (session-scoped) ----------
@pytest.fixture(scope="session")
def engine():
    """
    Engine único para la sesión de tests.
    """
    connect_args = {"check_same_thread": False} if TEST_DB_URL.startswith("sqlite") else {}
    eng = create_engine(TEST_DB_URL, future=True, echo=False, connect_args=connect_args)
    Base.metadata.create_all(eng)
    yield eng
    # Limpieza final
    Base.metadata.drop_all(eng)

# ---------- DB (function-scoped) ----------
@pytest.fixture
def db(engine):
    """
    Base limpia por test: dropea y crea tablas antes de cada test.
    """
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

# ---------- Override de get_db ----------
@pytest.fixture(autouse=True)
def _override_db(db):
    def _get_db():
        try:
            yield db
        finally:
            pass
    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)

# ---------- Cliente FastAPI ----------
@pytest.fixture
def client():
    return TestClient(app)

# ---------- Seed: User + cuenta + categoría + acreedor ----------
@pytest.fixture
def seeded_user(db):
    user = User(name="Ana", email="ana@test.local")
    db.add(user)
    db.flush()

    account = Account(user_id=user.id, name="Corriente", balance=100000.0)
    category = Category(user_id=user.id, name="Financiamientos")
    creditor = Creditor(user_id=user.id, name="Banco Test")
    db.add_all([account, category, creditor])
    db.commit()
    for obj in (user, account, category, creditor):
        db.refresh(obj)
    return {"user": user, "account": account, "category": category, "creditor": creditor}

@pytest.fixture
def other_user(db):
    """Segundo usuario, para chequear aislamiento por dueño."""
    user = User(name="Beto", email="beto@test.local")
    db.add(user)
    db.flush()
    account = Account(user_id=user.id, name="Beto cuenta", balance=1000.0)
    db.add(account)
    db.commit()
    db.refresh(user)
    db.refresh(account)
    return {"user": user, "account": account}

# ---------- Factory de financiamientos ----------
@pytest.fixture
def make_financing(db, seeded_user):
    def _make(total_amount=12000.0, interest_rate=0.01, term_months=12, method="SAC",
              current_balance=None, start_date=date(2024, 1, 10)):
        f = Financing(
            user_id=seeded_user["user"].id,
            creditor_id=seeded_user["creditor"].id,
            total_amount=total_amount,
            interest_rate=interest_rate,
            term_months=term_months,
            amortization_method=method,
            start_date=start_date,
            monthly_payment=0.0,
            current_balance=total_amount if current_balance is None else current_balance,
        )
        db.add(f)
        db.commit()
        db.refresh(f)
        return f
    return _make

# ---------- Header Authorization ----------
@pytest.fixture
def auth_headers(seeded_user):
    access = create_access_token(seeded_user["user"])
    return {"Authorization": f"Bearer {access}"}
