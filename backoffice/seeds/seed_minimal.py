# backoffice/seeds/seed_minimal.py
from sqlalchemy.orm import Session

from backoffice.database.db import SessionLocal
from backoffice.models.models import Account, Category, Creditor, User
from backoffice.utils.auth import create_access_token

SEED_EMAIL = "demo@example.com"


def ensure_seed(db: Session) -> dict:
    """Usuario demo con cuenta, categoría y acreedor. Idempotente."""
    # Evitar duplicados si re-ejecutás
    user = db.query(User).filter(User.email == SEED_EMAIL).first()
    if user:
        return {"user": user, "created": False}

    user = User(name="Demo", email=SEED_EMAIL)
    db.add(user)
    db.flush()

    db.add_all([
        Account(user_id=user.id, name="Cuenta corriente", account_type="checking", balance=50000.0),
        Category(user_id=user.id, name="Financiamientos"),
        Creditor(user_id=user.id, name="Banco Demo", document_number="00.000.000/0001-00"),
    ])
    db.commit()
    db.refresh(user)
    return {"user": user, "created": True}


def main():
    db = SessionLocal()
    try:
        result = ensure_seed(db)
        user = result["user"]
        if not result["created"]:
            print("Usuario demo ya existe; seed omitido.")
        else:
            print("Seed OK ✅")
        print(f"- Usuario: {user.email} (id={user.id})")
        print(f"- Token:   {create_access_token(user)}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
