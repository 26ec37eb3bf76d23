# backoffice/tests/test_financings_api.py

def _create_financing(client, headers, creditor_id, **overrides):
    body = {
        "creditor_id": creditor_id,
        "financing_type": "personal_loan",
        "description": "Préstamo auto",
        "total_amount": 12000.0,
        "interest_rate": 0.01,
        "term_months": 12,
        "amortization_method": "Price",   # valor legacy
        "start_date": "2024-01-10",
    }
    body.update(overrides)
    r = client.post("/financings/", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_requires_token(client):
    r = client.get("/financings/")
    assert r.status_code == 401
    r = client.get("/financing-payments/", headers={"Authorization": "Bearer basura"})
    assert r.status_code == 401


def test_create_financing_and_amortization_table(client, auth_headers, seeded_user):
    data = _create_financing(client, auth_headers, seeded_user["creditor"].id)
    fin = data["financing"]
    assert fin["amortization_method"] == "PRICE"
    assert fin["monthly_payment"] == 1066.19
    assert fin["current_balance"] == 12000.0
    assert fin["status"] == "active"
    assert data["summary"]["installments"] == 12
    assert data["summary"]["total_principal"] == 12000.0

    r = client.get(f"/financings/{fin['id']}/amortization", headers=auth_headers)
    assert r.status_code == 200, r.text
    table = r.json()
    assert len(table["schedule"]) == 12
    assert table["schedule"][0]["payment"] == 1066.19
    assert table["schedule"][0]["interest"] == 120.0
    assert table["schedule"][-1]["balance"] == 0.0
    assert not any(row["paid"] for row in table["schedule"])


def test_create_financing_unknown_creditor(client, auth_headers, seeded_user):
    r = client.post("/financings/", json={
        "creditor_id": 999,
        "total_amount": 1000.0,
        "interest_rate": 0.01,
        "term_months": 10,
        "start_date": "2024-01-10",
    }, headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "Acreedor no encontrado"


def test_create_financing_invalid_body(client, auth_headers, seeded_user):
    r = client.post("/financings/", json={
        "creditor_id": seeded_user["creditor"].id,
        "total_amount": 1000.0,
        "interest_rate": 0.01,
        "term_months": 0,
        "start_date": "2024-01-10",
    }, headers=auth_headers)
    assert r.status_code == 422


def test_pay_installment_flow(client, auth_headers, seeded_user):
    fin = _create_financing(client, auth_headers, seeded_user["creditor"].id)["financing"]
    account_id = seeded_user["account"].id

    r = client.post(f"/financings/{fin['id']}/pay-installment", json={
        "installment_number": 1,
        "account_id": account_id,
        "payment_method": "cartao",
    }, headers=auth_headers)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["payment"]["payment_amount"] == 1066.19
    assert body["payment"]["interest_amount"] == 120.0
    assert body["payment"]["payment_method"] == "card"
    assert body["transaction"]["type"] == "expense"

    # duplicada → 400
    r = client.post(f"/financings/{fin['id']}/pay-installment", json={
        "installment_number": 1,
        "account_id": account_id,
    }, headers=auth_headers)
    assert r.status_code == 400
    assert "ya fue pagada" in r.json()["detail"]

    r = client.get(f"/financings/{fin['id']}", headers=auth_headers)
    assert r.status_code == 200
    detail = r.json()
    assert detail["financing"]["paid_installments"] == 1
    assert detail["financing"]["current_balance"] == 11053.81
    assert detail["stats"]["remaining_installments"] == 11
    assert detail["stats"]["next_installment"] == 2
    assert detail["stats"]["next_due_date"] == "2024-02-10"

    r = client.get(f"/financings/{fin['id']}/amortization", headers=auth_headers)
    assert r.json()["schedule"][0]["paid"] is True


def test_early_payment_and_simulation(client, auth_headers, seeded_user):
    fin = _create_financing(client, auth_headers, seeded_user["creditor"].id, total_amount=8000.0)

    r = client.post(f"/financings/{fin['financing']['id']}/simulate-early-payment", json={
        "payment_amount": 2000.0,
        "preference": "reducao_prazo",
    }, headers=auth_headers)
    assert r.status_code == 200, r.text
    sim = r.json()
    assert sim["preference"] == "reduce_term"
    assert sim["new_balance"] == 6000.0
    assert sim["new_term"] < sim["original_term"]
    assert sim["interest_saved"] > 0

    r = client.post(f"/financings/{fin['financing']['id']}/early-payment", json={
        "account_id": seeded_user["account"].id,
        "payment_amount": 5000.0,
    }, headers=auth_headers)
    assert r.status_code == 201, r.text
    payment = r.json()["payment"]
    assert payment["installment_number"] is None
    assert payment["payment_type"] == "early"
    assert payment["balance_after"] == 3000.0

    r = client.post(f"/financings/{fin['financing']['id']}/early-payment", json={
        "account_id": seeded_user["account"].id,
        "payment_amount": 3000.0,
    }, headers=auth_headers)
    assert r.status_code == 400


def test_financing_payments_endpoints(client, auth_headers, seeded_user):
    fin = _create_financing(client, auth_headers, seeded_user["creditor"].id, amortization_method="SAC")
    account_id = seeded_user["account"].id

    r = client.post("/financing-payments/", json={
        "financing_id": fin["financing"]["id"],
        "account_id": account_id,
        "installment_number": 1,
        "payment_amount": 1120.0,
        "principal_amount": 1000.0,
        "interest_amount": 120.0,
        "payment_method": "boleto",
        "payment_type": "parcela",
    }, headers=auth_headers)
    assert r.status_code == 201, r.text
    payment_id = r.json()["payment"]["id"]
    assert r.json()["payment"]["payment_type"] == "scheduled"

    r = client.get("/financing-payments/", params={"financing_id": fin["financing"]["id"]}, headers=auth_headers)
    assert r.status_code == 200
    listing = r.json()
    assert listing["pagination"]["total"] == 1
    assert listing["statistics"]["total_amount"] == 1120.0

    r = client.get(f"/financing-payments/{payment_id}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["transaction"]["financing_payment_id"] == payment_id

    r = client.put(f"/financing-payments/{payment_id}", json={"observations": "ok"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["payment"]["observations"] == "ok"

    # tiene transacción vinculada → no se puede borrar
    r = client.delete(f"/financing-payments/{payment_id}", headers=auth_headers)
    assert r.status_code == 400

    r = client.get("/financing-payments/999", headers=auth_headers)
    assert r.status_code == 404


def test_future_payment_date_is_rejected(client, auth_headers, seeded_user):
    fin = _create_financing(client, auth_headers, seeded_user["creditor"].id)
    r = client.post(f"/financings/{fin['financing']['id']}/pay-installment", json={
        "installment_number": 1,
        "account_id": seeded_user["account"].id,
        "payment_date": "2999-01-01",
    }, headers=auth_headers)
    assert r.status_code == 422


def test_consistency_and_recalculate(client, auth_headers, seeded_user):
    fin = _create_financing(client, auth_headers, seeded_user["creditor"].id)
    fid = fin["financing"]["id"]

    r = client.get(f"/financings/{fid}/consistency", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["consistent"] is True

    r = client.post(f"/financings/{fid}/recalculate", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["after"]["current_balance"] == 12000.0


def test_list_and_delete_financings(client, auth_headers, seeded_user):
    a = _create_financing(client, auth_headers, seeded_user["creditor"].id)["financing"]
    b = _create_financing(client, auth_headers, seeded_user["creditor"].id, amortization_method="SAC")["financing"]

    r = client.get("/financings/", params={"amortization_method": "sac"}, headers=auth_headers)
    assert r.status_code == 200
    assert [f["id"] for f in r.json()["financings"]] == [b["id"]]

    r = client.get("/financings/", params={"status": "ativo"}, headers=auth_headers)
    assert r.json()["pagination"]["total"] == 2

    client.post(f"/financings/{a['id']}/pay-installment", json={
        "installment_number": 1,
        "account_id": seeded_user["account"].id,
    }, headers=auth_headers)
    r = client.delete(f"/financings/{a['id']}", headers=auth_headers)
    assert r.status_code == 400

    r = client.delete(f"/financings/{b['id']}", headers=auth_headers)
    assert r.status_code == 200
    r = client.get(f"/financings/{b['id']}", headers=auth_headers)
    assert r.status_code == 404


def test_other_users_financing_is_not_visible(client, auth_headers, seeded_user, other_user):
    from backoffice.utils.auth import create_access_token

    fin = _create_financing(client, auth_headers, seeded_user["creditor"].id)
    other_headers = {"Authorization": f"Bearer {create_access_token(other_user['user'])}"}
    r = client.get(f"/financings/{fin['financing']['id']}", headers=other_headers)
    assert r.status_code == 404
