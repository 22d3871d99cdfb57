def _create(client, headers, **body):
    r = client.post("/api/v1/subscriptions", json=body, headers=headers)
    assert r.status_code == 201, r.get_data(as_text=True)
    return r.get_json()


def test_financial_report(client, auth_headers, client_id):
    paid = _create(client, auth_headers, clientId=client_id, amount=100, dueDate="2024-03-05")
    client.post(
        f"/api/v1/subscriptions/{paid['id']}/pay",
        json={"paymentDate": "2024-03-04"},
        headers=auth_headers,
    )
    _create(client, auth_headers, clientId=client_id, amount=40, dueDate="2024-03-18")
    _create(client, auth_headers, clientId=client_id, amount=60, dueDate="2024-04-10")

    r = client.get("/api/v1/reports/financial?today=2024-03-15", headers=auth_headers)
    assert r.status_code == 200
    body = r.get_json()
    # status Pago + histórico do mesmo pagamento
    assert body["paidThisMonth"] == 200.0
    assert body["pending"] == 100.0
    assert body["overdue"] == 0
    assert body["nextMonthExpected"] == 60.0
    assert [s["amount"] for s in body["dueNext7Days"]] == [40.0]
    assert [s["amount"] for s in body["dueNext30Days"]] == [40.0, 60.0]
    assert body["dueNext7Days"][0]["clientName"] == "Padaria Pão Quente"


def test_dashboard_calendar(client, auth_headers, client_id):
    _create(client, auth_headers, clientId=client_id, amount=40, dueDate="2024-03-18")
    _create(client, auth_headers, clientId=client_id, amount=10, dueDate="2024-03-18")
    _create(client, auth_headers, clientId=client_id, amount=25, dueDate="2024-03-02")

    r = client.get("/api/v1/reports/dashboard?month=2024-03&today=2024-03-15", headers=auth_headers)
    assert r.status_code == 200
    body = r.get_json()
    assert body["month"] == "2024-03"
    assert [(d["date"], d["count"], d["totalAmount"]) for d in body["days"]] == [
        ("2024-03-02", 1, 25.0),
        ("2024-03-18", 2, 50.0),
    ]
    assert [d["date"] for d in body["upcoming"]] == ["2024-03-18"]
    assert body["totalOverdue"] == 25.0
    assert body["totalThisMonth"] == 75.0

    r = client.get("/api/v1/reports/dashboard?month=março", headers=auth_headers)
    assert r.status_code == 400
