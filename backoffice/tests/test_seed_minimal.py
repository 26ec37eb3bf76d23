# backoffice/tests/test_seed_minimal.py
from backoffice.models.models import Account, Creditor, User
from backoffice.seeds.seed_minimal import SEED_EMAIL, ensure_seed


def test_seed_is_idempotent(db):
    first = ensure_seed(db)
    assert first["created"] is True
    assert first["user"].email == SEED_EMAIL

    second = ensure_seed(db)
    assert second["created"] is False
    assert db.query(User).count() == 1
    assert db.query(Account).count() == 1
    assert db.query(Creditor).count() == 1
