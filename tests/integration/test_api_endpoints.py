"""Integration tests for API endpoints."""

from uuid import uuid4

import pytest


@pytest.fixture
async def employee(session, make_employee):
    """One committed employee earning Rs.25,000 in Karnataka."""
    employee = await make_employee(session)
    await session.commit()
    return employee


@pytest.fixture
async def taxpayer(session, make_employee):
    """One committed employee earning Rs.1,00,000 a month."""
    employee = await make_employee(
        session, basic=5_000_000, hra=3_000_000, special_allowance=2_000_000
    )
    await session.commit()
    return employee


async def create_completed_run(client, month: int = 4, year: int = 2025) -> dict:
    response = await client.post(
        "/api/v1/payroll-runs", json={"month": month, "year": year, "process_now": False}
    )
    assert response.status_code == 201
    run_id = response.json()["payroll_run_id"]
    response = await client.post(f"/api/v1/payroll-runs/{run_id}/process")
    assert response.status_code == 200
    return response.json()


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_health_check(self, client):
        """Test health check returns healthy status."""
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["engine_version"] == "test"

    async def test_readiness_check(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestPayrollRunEndpoints:
    """Tests for payroll run lifecycle endpoints."""

    async def test_create_processes_in_background(self, client, employee):
        response = await client.post("/api/v1/payroll-runs", json={"month": 4, "year": 2025})

        assert response.status_code == 201
        created = response.json()
        assert created["status"] == "PENDING"

        response = await client.get(f"/api/v1/payroll-runs/{created['payroll_run_id']}")
        assert response.status_code == 200
        run = response.json()
        assert run["status"] == "COMPLETED"
        assert run["employee_count"] == 1
        assert run["total_gross"] == 2_500_000
        assert run["errors"] == []

    async def test_duplicate_period_conflict(self, client, employee):
        await client.post("/api/v1/payroll-runs", json={"month": 4, "year": 2025})
        response = await client.post("/api/v1/payroll-runs", json={"month": 4, "year": 2025})

        assert response.status_code == 409
        assert "already exists" in response.json()["detail"]

    async def test_invalid_period(self, client):
        response = await client.post("/api/v1/payroll-runs", json={"month": 13, "year": 2025})
        assert response.status_code == 422

    async def test_list_and_records(self, client, employee):
        run = await create_completed_run(client)

        response = await client.get("/api/v1/payroll-runs")
        assert response.json()["total"] == 1

        response = await client.get(f"/api/v1/payroll-runs/{run['payroll_run_id']}/records")
        assert response.status_code == 200
        records = response.json()["items"]
        assert len(records) == 1
        assert records[0]["employee_id"] == str(employee.employee_id)
        assert records[0]["gross"] == 2_500_000
        assert records[0]["pf_employee"] == 180_000
        assert len(records[0]["inputs_fingerprint"]) == 64

    async def test_process_twice_conflict(self, client, employee):
        run = await create_completed_run(client)
        response = await client.post(f"/api/v1/payroll-runs/{run['payroll_run_id']}/process")
        assert response.status_code == 409

    async def test_revert(self, client, employee):
        run = await create_completed_run(client)
        run_id = run["payroll_run_id"]

        response = await client.post(f"/api/v1/payroll-runs/{run_id}/revert", json={"reason": ""})
        assert response.status_code == 422

        response = await client.post(
            f"/api/v1/payroll-runs/{run_id}/revert", json={"reason": "attendance corrected"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "REVERTED"
        assert response.json()["revert_reason"] == "attendance corrected"

        response = await client.post(
            f"/api/v1/payroll-runs/{run_id}/revert", json={"reason": "again"}
        )
        assert response.status_code == 409

        # The period is free again
        response = await client.post(
            "/api/v1/payroll-runs", json={"month": 4, "year": 2025, "process_now": False}
        )
        assert response.status_code == 201

    async def test_run_not_found(self, client):
        response = await client.get(f"/api/v1/payroll-runs/{uuid4()}")
        assert response.status_code == 404

        response = await client.post(f"/api/v1/payroll-runs/{uuid4()}/process")
        assert response.status_code == 404


class TestStatutoryFileEndpoints:
    """Tests for ECR and ESI challan downloads."""

    async def test_ecr_download(self, client, employee):
        run = await create_completed_run(client)

        response = await client.get(f"/api/v1/payroll-runs/{run['payroll_run_id']}/statutory/ecr")

        assert response.status_code == 200
        assert response.headers["x-record-count"] == "1"
        assert response.headers["x-skipped-records"] == "0"
        assert 'filename="ECR_04_2025.txt"' in response.headers["content-disposition"]
        assert response.text.split("\n")[-1].startswith("TOTAL#~#KABNG0012345000")

    async def test_esi_download(self, client, employee):
        run = await create_completed_run(client)

        response = await client.get(f"/api/v1/payroll-runs/{run['payroll_run_id']}/statutory/esi")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        # Rs.25,000 is above the ESI ceiling
        assert response.headers["x-record-count"] == "0"
        assert "Month/Year,04/2025" in response.text

    async def test_generated_files_are_listed(self, client, employee):
        """Test that each download leaves an audit row for the run."""
        run = await create_completed_run(client)
        run_id = run["payroll_run_id"]
        await client.get(f"/api/v1/payroll-runs/{run_id}/statutory/ecr")
        await client.get(f"/api/v1/payroll-runs/{run_id}/statutory/esi")

        response = await client.get(f"/api/v1/payroll-runs/{run_id}/statutory/files")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert {f["file_type"] for f in body["items"]} == {"ECR", "ESI_CHALLAN"}
        assert all(len(f["content_sha256"]) == 64 for f in body["items"])

    async def test_pending_run_conflict(self, client, employee):
        response = await client.post(
            "/api/v1/payroll-runs", json={"month": 4, "year": 2025, "process_now": False}
        )
        run_id = response.json()["payroll_run_id"]

        response = await client.get(f"/api/v1/payroll-runs/{run_id}/statutory/ecr")
        assert response.status_code == 409


class TestTDSEndpoints:
    """Tests for Form 24Q and Form 16."""

    async def test_form24q(self, client, taxpayer):
        await create_completed_run(client)

        response = await client.get(
            "/api/v1/tds/form24q", params={"quarter": 1, "financial_year": 2025}
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["content_sha256"]) == 64
        assert data["annexure_i"]["deductor_tan"] == "BLRA12345B"
        assert data["annexure_i"]["deductees"][0]["tds_deducted"] == "5958.33"
        assert data["annexure_ii"] is None

    async def test_form24q_invalid_quarter(self, client):
        response = await client.get(
            "/api/v1/tds/form24q", params={"quarter": 5, "financial_year": 2025}
        )
        assert response.status_code == 422

    async def test_form16_json(self, client, taxpayer):
        await create_completed_run(client)

        response = await client.get(
            f"/api/v1/tds/form16/{taxpayer.employee_id}", params={"financial_year": 2025}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["part_a"]["employee_code"] == taxpayer.employee_code
        assert data["part_b"]["total_tds_deducted"] == "5958.33"
        assert [q["quarter"] for q in data["quarterly_tds"]] == ["Q1", "Q2", "Q3", "Q4"]

    async def test_form16_text(self, client, taxpayer):
        await create_completed_run(client)

        response = await client.get(
            f"/api/v1/tds/form16/{taxpayer.employee_id}",
            params={"financial_year": 2025, "format": "text"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "FORM NO. 16" in response.text

    async def test_form16_unknown_employee(self, client):
        response = await client.get(
            f"/api/v1/tds/form16/{uuid4()}", params={"financial_year": 2025}
        )
        assert response.status_code == 404


class TestPTSlabEndpoints:
    """Tests for Professional Tax slab administration."""

    async def test_create_and_list(self, client):
        response = await client.post(
            "/api/v1/pt-slabs",
            json={"state_code": "KA", "salary_from": 1_500_000, "tax_amount": 20_000},
        )
        assert response.status_code == 201
        assert response.json()["is_active"] is True

        response = await client.get("/api/v1/pt-slabs", params={"state_code": "KA"})
        assert response.json()["total"] == 1

    async def test_overlap_conflict(self, client):
        payload = {"state_code": "KA", "salary_from": 1_500_000, "tax_amount": 20_000}
        await client.post("/api/v1/pt-slabs", json=payload)

        response = await client.post(
            "/api/v1/pt-slabs", json={**payload, "salary_from": 2_000_000}
        )
        assert response.status_code == 409

    async def test_invalid_state_code(self, client):
        response = await client.post(
            "/api/v1/pt-slabs",
            json={"state_code": "K1", "salary_from": 0, "tax_amount": 0},
        )
        assert response.status_code == 400

    async def test_update_supersedes(self, client):
        response = await client.post(
            "/api/v1/pt-slabs",
            json={"state_code": "KA", "salary_from": 1_500_000, "tax_amount": 20_000},
        )
        old_id = response.json()["slab_id"]

        response = await client.put(f"/api/v1/pt-slabs/{old_id}", json={"tax_amount": 25_000})
        assert response.status_code == 200
        new = response.json()
        assert new["slab_id"] != old_id
        assert new["tax_amount"] == 25_000

        response = await client.get(
            "/api/v1/pt-slabs", params={"state_code": "KA", "include_inactive": True}
        )
        slabs = {s["slab_id"]: s for s in response.json()["items"]}
        assert slabs[old_id]["is_active"] is False
        assert slabs[old_id]["superseded_by"] == new["slab_id"]

    async def test_delete_is_soft(self, client):
        response = await client.post(
            "/api/v1/pt-slabs",
            json={"state_code": "TN", "salary_from": 750_100, "tax_amount": 13_500},
        )
        slab_id = response.json()["slab_id"]

        response = await client.delete(f"/api/v1/pt-slabs/{slab_id}")
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        response = await client.get("/api/v1/pt-slabs", params={"state_code": "TN"})
        assert response.json()["total"] == 0

    async def test_missing_slab(self, client):
        response = await client.put(f"/api/v1/pt-slabs/{uuid4()}", json={"tax_amount": 1})
        assert response.status_code == 404


class TestDeadlineEndpoints:
    """Tests for statutory deadline tracking."""

    async def test_generate_sweep_and_upcoming(self, client):
        response = await client.post(
            "/api/v1/statutory/deadlines/generate", json={"month": 3, "year": 2026}
        )
        assert response.status_code == 201
        assert response.json()["total"] == 7

        response = await client.post(
            "/api/v1/statutory/deadlines/sweep", json={"today": "2026-04-10"}
        )
        assert response.status_code == 200
        assert response.json() == {
            "as_of": "2026-04-10",
            "overdue": 1,
            "alerts": {"7_day": 3, "3_day": 0, "1_day": 0},
        }

        response = await client.get(
            "/api/v1/statutory/deadlines", params={"as_of": "2026-04-10"}
        )
        items = response.json()["items"]
        assert len(items) == 5
        assert items[0]["deadline"]["status"] == "OVERDUE"
        assert items[0]["severity"] == "CRITICAL"

    async def test_mark_filed(self, client):
        response = await client.post(
            "/api/v1/statutory/deadlines/generate", json={"month": 5, "year": 2025}
        )
        deadline_id = response.json()["items"][0]["deadline_id"]
        url = f"/api/v1/statutory/deadlines/{deadline_id}"

        response = await client.patch(url, json={"status": "FILED"})
        assert response.status_code == 400

        response = await client.patch(
            url, json={"status": "FILED", "filed_by": "hr@acme", "filing_reference": "TRRN1"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "FILED"
        assert response.json()["filing_reference"] == "TRRN1"

        response = await client.patch(url, json={"status": "NOT_APPLICABLE"})
        assert response.status_code == 409

    async def test_missing_deadline(self, client):
        response = await client.patch(
            f"/api/v1/statutory/deadlines/{uuid4()}", json={"status": "NOT_APPLICABLE"}
        )
        assert response.status_code == 404
