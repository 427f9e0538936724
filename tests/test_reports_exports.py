from __future__ import annotations

import csv
import io

from fastapi.testclient import TestClient
from openpyxl import load_workbook

API = "/api/v1"


def _post(client: TestClient, headers: dict[str, str], path: str, payload: dict) -> dict:
    response = client.post(f"{API}{path}", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _seed(client: TestClient, headers: dict[str, str]) -> dict[str, dict]:
    ana = _post(client, headers, "/employees", {"name": "Ana", "role": "Designer"})
    acme = _post(client, headers, "/clients", {"name": "Acme"})
    beta = _post(client, headers, "/clients", {"name": "Beta"})
    website = _post(
        client,
        headers,
        "/projects",
        {"client_id": acme["id"], "name": "Website", "budget_hours": 40, "minimum_hours": 10},
    )
    ads = _post(client, headers, "/projects", {"client_id": beta["id"], "name": "Ads", "budget_hours": 10})

    for week, hours in (("2026-03-02", 20), ("2026-03-16", 16)):
        _post(
            client,
            headers,
            "/allocations",
            {"employee_id": ana["id"], "project_id": website["id"], "week_start_date": week, "hours_assigned": hours},
        )
    _post(
        client,
        headers,
        "/allocations",
        {
            "employee_id": ana["id"],
            "project_id": ads["id"],
            "week_start_date": "2026-03-09",
            "hours_assigned": 12,
            "hours_actual": 15,
            "status": "completed",
        },
    )
    # Outside March: must not count.
    _post(
        client,
        headers,
        "/allocations",
        {"employee_id": ana["id"], "project_id": ads["id"], "week_start_date": "2026-04-06", "hours_assigned": 30},
    )
    return {"ana": ana, "acme": acme, "beta": beta, "website": website, "ads": ads}


def test_client_usage(client: TestClient, admin_headers: dict[str, str]) -> None:
    seeded = _seed(client, admin_headers)

    response = client.get(
        f"{API}/clients/{seeded['acme']['id']}/usage", headers=admin_headers, params={"month": "2026-03"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "client_id": seeded["acme"]["id"],
        "month": "2026-03",
        "used": 36.0,
        "budget": 40.0,
        "percentage": 90.0,
        "near_limit": True,
        "over_budget": False,
    }


def test_client_report(client: TestClient, admin_headers: dict[str, str]) -> None:
    _seed(client, admin_headers)

    report = client.get(f"{API}/reports/clients", headers=admin_headers, params={"month": "2026-03"}).json()

    assert report["summary"] == {
        "total_clients": 2,
        "at_risk_clients": 1,
        "over_budget_clients": 1,
        "over_budget_projects": 1,
    }
    clients = {row["client"]["name"]: row for row in report["clients"]}
    [website] = clients["Acme"]["projects"]
    assert website["assigned_hours"] == 36.0
    assert website["planning_percentage"] == 90.0
    assert website["near_limit"] is True
    assert website["under_minimum"] is False
    assert website["pending_allocations"] == 2

    [ads] = clients["Beta"]["projects"]
    assert ads["over_budget"] is True
    assert ads["actual_hours"] == 15.0
    assert ads["completed_allocations"] == 1
    assert clients["Beta"]["usage"]["percentage"] == 120.0


def test_export_csv(client: TestClient, admin_headers: dict[str, str]) -> None:
    _seed(client, admin_headers)

    response = client.get(
        f"{API}/exports/client-report", headers=admin_headers, params={"month": "2026-03", "format": "csv"}
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="client-report-2026-03.csv"' in response.headers["content-disposition"]
    rows = list(csv.DictReader(io.StringIO(response.content.decode("utf-8"))))
    assert [(row["client"], row["project"]) for row in rows] == [("Acme", "Website"), ("Beta", "Ads")]
    assert rows[0]["assigned_hours"] == "36,0h"
    assert rows[1]["over_budget"] == "yes"


def test_export_xlsx(client: TestClient, admin_headers: dict[str, str]) -> None:
    _seed(client, admin_headers)

    response = client.get(
        f"{API}/exports/client-report", headers=admin_headers, params={"month": "2026-03", "format": "xlsx"}
    )

    assert response.status_code == 200
    sheet = load_workbook(io.BytesIO(response.content))["report"]
    values = list(sheet.iter_rows(values_only=True))
    assert values[0][:3] == ("client", "project", "status")
    assert len(values) == 3


def test_export_rejects_unknown_format(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.get(
        f"{API}/exports/client-report", headers=admin_headers, params={"month": "2026-03", "format": "pdf"}
    )

    assert response.status_code == 422


def test_employee_dashboard(client: TestClient, admin_headers: dict[str, str]) -> None:
    seeded = _seed(client, admin_headers)
    ana_id = seeded["ana"]["id"]

    dashboard = client.get(f"{API}/reports/employees/{ana_id}", headers=admin_headers, params={"month": "2026-03"})

    assert dashboard.status_code == 200
    body = dashboard.json()
    assert body["label"] == "Marzo - 2026"
    assert len(body["weeks"]) == 5
    assert body["month_load"]["hours"] == 48.0
    assert body["reliability"]["tasks_analyzed"] == 1
    assert body["reliability"]["trend"] == "insufficient"
    assert body["balance"]["planned_hours"] == 48.0
    assert body["balance"]["completed_hours"] == 12.0
    assert body["balance"]["balance"] == -3.0
    assert body["balance"]["label"] == "-3,0h"


def test_my_dashboard_requires_linked_employee(client: TestClient, admin_headers: dict[str, str]) -> None:
    seeded = _seed(client, admin_headers)

    unlinked = client.get(f"{API}/reports/me", headers=admin_headers, params={"month": "2026-03"})
    assert unlinked.status_code == 404

    me = client.get(f"{API}/me", headers=admin_headers).json()
    linked = client.patch(
        f"{API}/admin/users/{me['id']}", headers=admin_headers, json={"employee_id": seeded["ana"]["id"]}
    )
    assert linked.status_code == 200

    mine = client.get(f"{API}/reports/me", headers=admin_headers, params={"month": "2026-03"})
    assert mine.status_code == 200
    assert mine.json()["employee"]["id"] == seeded["ana"]["id"]
