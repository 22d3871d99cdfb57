from datetime import date, timedelta

from billing import recurrence
from models.subscription import Subscription
from notifications.service import PAYMENT_RECEIVED, SCHEDULE_PAYMENT_NOTIFICATION


def _create(client, headers, **body):
    r = client.post("/api/v1/subscriptions", json=body, headers=headers)
    assert r.status_code == 201, r.get_data(as_text=True)
    return r.get_json()


def test_quote(client, auth_headers):
    r = client.post(
        "/api/v1/subscriptions/quote",
        json={
            "implementationValue": 3000,
            "implementationPaymentType": "parcelado",
            "implementationInstallments": 3,
            "maintenanceValuePerNumber": 150,
            "numberOfNumbers": 2,
            "startDate": "2024-01-31",
            "paymentDay": 31,
        },
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.get_json() == {
        "monthlyImplementationAmount": 1000.0,
        "monthlyMaintenanceAmount": 300.0,
        "totalMonthlyAmount": 1300.0,
        "totalContractValue": 6600.0,
        "firstDueDate": "2024-02-29",
    }


def test_create_with_breakdown_computes_amounts(client, auth_headers, client_id):
    sub = _create(
        client, auth_headers,
        clientId=client_id,
        isRecurring=True,
        paymentDay=10,
        startDate="2030-01-20",
        implementationValue=1200,
        implementationPaymentType="parcelado",
        implementationInstallments=2,
        maintenanceValuePerNumber=100,
        numberOfNumbers=3,
    )
    assert sub["amount"] == 900.0
    assert sub["totalMonthlyAmount"] == 900.0
    assert sub["dueDate"] == "2030-02-10"
    assert sub["status"] == "Pendente"
    assert sub["successor"] is None


def test_create_validation(client, auth_headers, client_id):
    r = client.post("/api/v1/subscriptions", json={"clientId": client_id}, headers=auth_headers)
    assert r.status_code == 400
    assert set(r.get_json()["fields"]) == {"amount", "dueDate"}

    r = client.post(
        "/api/v1/subscriptions",
        json={"clientId": client_id, "amount": 10, "dueDate": "2030-01-01",
              "totalInstallments": 2, "currentInstallment": 3, "isRecurring": True},
        headers=auth_headers,
    )
    assert set(r.get_json()["fields"]) == {"currentInstallment", "recurrenceDay"}

    r = client.post(
        "/api/v1/subscriptions",
        json={"clientId": "00000000-0000-0000-0000-000000000000", "amount": 10, "dueDate": "2030-01-01"},
        headers=auth_headers,
    )
    assert r.status_code == 404


def test_pay_recurring_creates_next_period(client, auth_headers, client_id, outbox):
    sub = _create(
        client, auth_headers,
        clientId=client_id, amount=250, dueDate="2030-01-31",
        isRecurring=True, recurrenceDay=31, totalInstallments=12,
    )
    outbox.drain()

    r = client.post(
        f"/api/v1/subscriptions/{sub['id']}/pay",
        json={"paymentDate": "2030-01-30", "paymentMethod": "PIX"},
        headers=auth_headers,
    )
    assert r.status_code == 200, r.get_data(as_text=True)
    body = r.get_json()
    assert body["subscription"]["status"] == "Pago"
    assert body["subscription"]["paymentDate"] == "2030-01-30"
    assert body["payment"]["amount"] == 250.0
    assert body["payment"]["paymentMethod"] == "PIX"
    assert body["payment"]["notes"] == "Pagamento da mensalidade"
    successor = body["successor"]
    assert successor["dueDate"] == "2030-02-28"
    assert successor["currentInstallment"] == 2
    assert successor["status"] == "Pendente"

    types = [m["type"] for m in outbox.drain()]
    assert types == [PAYMENT_RECEIVED, SCHEDULE_PAYMENT_NOTIFICATION]

    # pagar de novo é conflito
    r = client.post(f"/api/v1/subscriptions/{sub['id']}/pay", json={}, headers=auth_headers)
    assert r.status_code == 409

    r = client.get(f"/api/v1/subscriptions/{sub['id']}/payments", headers=auth_headers)
    assert len(r.get_json()) == 1

    r = client.get(f"/api/v1/subscriptions?clientId={client_id}", headers=auth_headers)
    assert [s["dueDate"] for s in r.get_json()] == ["2030-02-28", "2030-01-31"]


def test_last_installment_stops_recurrence(client, auth_headers, client_id):
    sub = _create(
        client, auth_headers,
        clientId=client_id, amount=100, dueDate="2030-12-10",
        isRecurring=True, recurrenceDay=10, totalInstallments=12, currentInstallment=12,
    )
    r = client.post(f"/api/v1/subscriptions/{sub['id']}/pay", json={}, headers=auth_headers)
    assert r.status_code == 200
    assert r.get_json()["successor"] is None


def test_create_already_paid_recurring_spawns_successor(client, auth_headers, client_id):
    sub = _create(
        client, auth_headers,
        clientId=client_id, amount=80, dueDate="2030-03-05", status="Pago",
        paymentDate="2030-03-01", isRecurring=True, recurrenceDay=5,
    )
    assert sub["successor"]["dueDate"] == "2030-04-05"
    assert sub["successor"]["amount"] == 80.0


def test_pause_and_resume(client, auth_headers, client_id):
    sub = _create(
        client, auth_headers,
        clientId=client_id, amount=100, dueDate="2024-01-10", isRecurring=True, recurrenceDay=10,
    )
    r = client.post(f"/api/v1/subscriptions/{sub['id']}/pause", headers=auth_headers)
    assert r.status_code == 200
    assert r.get_json()["status"] == "Pausado" and r.get_json()["isPaused"] is True

    r = client.post(f"/api/v1/subscriptions/{sub['id']}/resume?today=2024-05-11", headers=auth_headers)
    assert r.status_code == 200
    resumed = r.get_json()
    assert resumed["status"] == "Pendente" and resumed["isPaused"] is False
    assert resumed["dueDate"] == "2024-06-10"

    r = client.post(f"/api/v1/subscriptions/{sub['id']}/resume", headers=auth_headers)
    assert r.status_code == 409


def test_pause_non_recurring_is_conflict(client, auth_headers, client_id):
    sub = _create(client, auth_headers, clientId=client_id, amount=10, dueDate="2030-01-01")
    r = client.post(f"/api/v1/subscriptions/{sub['id']}/pause", headers=auth_headers)
    assert r.status_code == 409
    assert "recorrentes" in r.get_json()["error"]


def test_paid_while_paused_cannot_be_resumed(client, auth_headers, client_id):
    sub = _create(
        client, auth_headers,
        clientId=client_id, amount=100, dueDate="2030-01-10", isRecurring=True, recurrenceDay=10,
    )
    r = client.post(f"/api/v1/subscriptions/{sub['id']}/pause", headers=auth_headers)
    assert r.status_code == 200

    r = client.post(
        f"/api/v1/subscriptions/{sub['id']}/pay",
        json={"paymentDate": "2030-01-09"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.get_json()["subscription"]["status"] == "Pago"
    assert r.get_json()["successor"] is None

    r = client.post(f"/api/v1/subscriptions/{sub['id']}/resume?today=2030-01-20", headers=auth_headers)
    assert r.status_code == 409

    r = client.get(f"/api/v1/subscriptions/{sub['id']}", headers=auth_headers)
    assert r.get_json()["status"] == "Pago"
    assert r.get_json()["dueDate"] == "2030-01-10"

    r = client.post(f"/api/v1/subscriptions/{sub['id']}/pay", json={}, headers=auth_headers)
    assert r.status_code == 409
    r = client.get(f"/api/v1/subscriptions/{sub['id']}/payments", headers=auth_headers)
    assert len(r.get_json()) == 1


def test_paying_one_period_leaves_paused_sibling_alone(client, auth_headers, client_id):
    paused = _create(
        client, auth_headers,
        clientId=client_id, amount=100, dueDate="2030-01-10", isRecurring=True, recurrenceDay=10,
    )
    other = _create(client, auth_headers, clientId=client_id, amount=50, dueDate="2030-01-15")
    r = client.post(f"/api/v1/subscriptions/{paused['id']}/pause", headers=auth_headers)
    assert r.status_code == 200

    r = client.post(f"/api/v1/subscriptions/{other['id']}/pay", json={}, headers=auth_headers)
    assert r.status_code == 200

    r = client.get(f"/api/v1/subscriptions/{paused['id']}", headers=auth_headers)
    body = r.get_json()
    assert body["isPaused"] is True
    assert body["status"] == "Pausado"
    assert body["dueDate"] == "2030-01-10"


def test_successor_failure_keeps_the_payment(client, auth_headers, client_id, monkeypatch, caplog):
    sub = _create(
        client, auth_headers,
        clientId=client_id, amount=100, dueDate="2030-01-10", isRecurring=True, recurrenceDay=10,
    )

    # sem amount: o NOT NULL derruba o segundo commit
    def broken_successor(paid):
        return Subscription(client_id=paid.client_id, due_date=paid.due_date, status="Pendente")

    monkeypatch.setattr(recurrence, "build_successor", broken_successor)

    r = client.post(f"/api/v1/subscriptions/{sub['id']}/pay", json={}, headers=auth_headers)
    assert r.status_code == 500
    assert "was not created" in r.get_json()["detail"]
    assert "next period was not created" in caplog.text

    r = client.get(f"/api/v1/subscriptions/{sub['id']}", headers=auth_headers)
    assert r.get_json()["status"] == "Pago"
    r = client.get(f"/api/v1/subscriptions/{sub['id']}/payments", headers=auth_headers)
    assert len(r.get_json()) == 1
    r = client.get(f"/api/v1/subscriptions?clientId={client_id}", headers=auth_headers)
    assert len(r.get_json()) == 1


def test_contract_creates_whole_schedule(client, auth_headers, client_id):
    r = client.post(
        "/api/v1/subscriptions/contract?today=2024-01-20",
        json={
            "clientId": client_id,
            "startDate": "2024-01-20",
            "paymentDay": 10,
            "implementationValue": 1500,
            "implementationPaymentType": "parcelado",
            "implementationInstallments": 3,
            "maintenanceValuePerNumber": 200,
            "contractDuration": 6,
            "implementationPaid": True,
        },
        headers=auth_headers,
    )
    assert r.status_code == 201, r.get_data(as_text=True)
    rows = r.get_json()
    assert len(rows) == 6
    assert rows[0]["status"] == "Pago" and rows[0]["paymentDate"] == "2024-01-20"
    assert [row["amount"] for row in rows] == [700.0, 700.0, 700.0, 200.0, 200.0, 200.0]
    assert rows[5]["dueDate"] == "2024-07-10"
    assert rows[5]["description"] == "Mensalidade 6/6 (Apenas Manutenção)"

    r = client.post(
        "/api/v1/subscriptions/contract",
        json={"clientId": client_id, "startDate": "2024-01-20", "maintenanceValuePerNumber": 10,
              "implementationInstallments": 24, "contractDuration": 12},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert "implementationInstallments" in r.get_json()["fields"]


def test_overdue_refresh_and_listing(client, auth_headers, client_id):
    past = _create(client, auth_headers, clientId=client_id, amount=50, dueDate="2024-02-01")
    _create(client, auth_headers, clientId=client_id, amount=60, dueDate="2024-04-01")

    r = client.get("/api/v1/subscriptions/overdue?today=2024-03-01", headers=auth_headers)
    assert [s["id"] for s in r.get_json()] == [past["id"]]

    r = client.post("/api/v1/subscriptions/refresh-overdue?today=2024-03-01", headers=auth_headers)
    assert r.get_json()["updated"] == 1
    assert r.get_json()["items"][0]["status"] == "Atrasado"

    r = client.post("/api/v1/subscriptions/refresh-overdue?today=2024-03-01", headers=auth_headers)
    assert r.get_json()["updated"] == 0

    r = client.get("/api/v1/subscriptions/overdue?today=bad", headers=auth_headers)
    assert r.status_code == 400


def test_update_and_delete(client, auth_headers, client_id):
    sub = _create(client, auth_headers, clientId=client_id, amount=10, dueDate="2030-01-01")

    r = client.put(
        f"/api/v1/subscriptions/{sub['id']}",
        json={"status": "Cancelado", "notes": "cliente encerrou"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.get_json()["status"] == "Cancelado"
    assert r.get_json()["amount"] == 10.0

    r = client.put(f"/api/v1/subscriptions/{sub['id']}", json={"amount": None}, headers=auth_headers)
    assert r.status_code == 400

    r = client.put(f"/api/v1/subscriptions/{sub['id']}", json={"status": "Sumido"}, headers=auth_headers)
    assert r.status_code == 400

    r = client.delete(f"/api/v1/subscriptions/{sub['id']}", headers=auth_headers)
    assert r.status_code == 204
    r = client.get(f"/api/v1/subscriptions/{sub['id']}", headers=auth_headers)
    assert r.status_code == 404


def test_manual_payment_history(client, auth_headers, client_id):
    sub = _create(client, auth_headers, clientId=client_id, amount=10, dueDate="2030-01-01")
    r = client.post(
        f"/api/v1/subscriptions/{sub['id']}/payments",
        json={"amount": 5, "paymentDate": "2030-01-02", "paymentMethod": "Dinheiro"},
        headers=auth_headers,
    )
    assert r.status_code == 201
    pid = r.get_json()["id"]

    # histórico manual não muda o status
    assert client.get(f"/api/v1/subscriptions/{sub['id']}", headers=auth_headers).get_json()["status"] == "Pendente"

    r = client.get("/api/v1/payments?startDate=2030-01-01", headers=auth_headers)
    assert [p["id"] for p in r.get_json()] == [pid]

    r = client.delete(f"/api/v1/payments/{pid}", headers=auth_headers)
    assert r.status_code == 204
    r = client.delete(f"/api/v1/payments/{pid}", headers=auth_headers)
    assert r.status_code == 404


def test_reminders_scheduled_for_new_pending_periods(client, auth_headers, client_id, outbox):
    outbox.drain()
    due = date.today() + timedelta(days=10)
    _create(client, auth_headers, clientId=client_id, amount=75, dueDate=due.isoformat())
    (msg,) = outbox.drain()
    assert msg["type"] == SCHEDULE_PAYMENT_NOTIFICATION
    assert msg["payload"]["dueDate"] == due.isoformat()
    assert msg["payload"]["clientName"] == "Padaria Pão Quente"
