import httpx
import pytest
import pytest_asyncio

from main import app
from tests.factories import MONTH, YEAR, add_logger, add_meter, make_main, make_part, make_sub, reading


@pytest_asyncio.fixture
async def client(db):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def plant(db):
    main = await make_main(dc_capacity_kwp="1,000")
    await add_meter(main, [
        reading("01-03-2025", ae=60, ai=10, start="00:00"),
        reading("02-03-2025", ae=50, ai=5, start="00:00"),
    ])
    sub = await make_sub(main, "S1", "S1-M")
    await add_meter(sub, [
        reading("01-03-2025", ae=55, ai=5, start="00:00"),
        reading("02-03-2025", ae=45, start="00:00"),
    ])
    await add_logger(sub, {"01-03-2025": 50, "02-03-2025": 44})
    await make_part(sub, "S1 Part", "100")
    return main


class TestDailyReportsApi:

    @pytest.mark.asyncio
    async def test_generate_then_cached(self, client, plant):
        body = {"main_client_id": plant.id, "month": MONTH, "year": YEAR}
        first = await client.post("/daily-reports", json=body)
        assert first.status_code == 201
        assert first.json()["cached"] is False
        assert first.json()["ac_line_loss"]["figures"][0]["export_diff"] == 5

        second = await client.post("/daily-reports", json=body)
        assert second.status_code == 200
        assert second.json()["cached"] is True
        assert second.json()["id"] == first.json()["id"]

        refreshed = await client.post("/daily-reports", json={**body, "refresh": True})
        assert refreshed.status_code == 201

        fetched = await client.get(f"/daily-reports/{first.json()['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["main_client_detail"]["name"] == "Solar Park"

    @pytest.mark.asyncio
    async def test_missing_meter_data(self, client, db):
        main = await make_main(name="Dark Park", meter="DK-1", check="DK-2")
        res = await client.post("/daily-reports", json={"main_client_id": main.id, "month": MONTH, "year": YEAR})
        assert res.status_code == 400
        detail = res.json()["detail"]
        assert detail["message"].startswith("Meter data missing for Main Client")
        assert detail["clients_without_meters"][0]["name"] == "Dark Park"

    @pytest.mark.asyncio
    async def test_invalid_main_polarity(self, client, db):
        main = await make_main(name="Odd Park", meter="OD-1", check=None, pn=3)
        res = await client.post("/daily-reports", json={"main_client_id": main.id, "month": MONTH, "year": YEAR})
        assert res.status_code == 422

    @pytest.mark.asyncio
    async def test_validation_and_not_found(self, client, db):
        res = await client.post("/daily-reports", json={"main_client_id": 1, "month": 13, "year": YEAR})
        assert res.status_code == 422
        assert (await client.post("/daily-reports", json={"main_client_id": 77, "month": 1, "year": YEAR})).status_code == 404
        assert (await client.get("/daily-reports/123")).status_code == 404
        assert (await client.get("/daily-reports/latest")).status_code == 404

    @pytest.mark.asyncio
    async def test_latest(self, client, plant):
        await client.post("/daily-reports", json={"main_client_id": plant.id, "month": MONTH, "year": YEAR})
        res = await client.get("/daily-reports/latest")
        assert res.status_code == 206
        assert res.headers["Content-Range"] == "items 0-0/1"
        assert res.json()[0]["client_name"] == "Solar Park"


class TestLossesApi:

    @pytest.mark.asyncio
    async def test_generate_and_sldc(self, client, plant):
        body = {
            "main_client_id": plant.id,
            "month": MONTH,
            "year": YEAR,
            "main_entry": {"approved_injection": 0.11, "discom": {"DGVCL": "0.1"}},
        }
        res = await client.post("/losses", json=body)
        assert res.status_code == 201
        data = res.json()
        assert data["sldc_gross_injection"] == 0.11
        assert data["per_discom_totals"]["DGVCL"] == 0.1
        assert data["sub_clients"][0]["part_clients"][0]["name"] == "S1 Part"

        again = await client.post("/losses", json=body)
        assert again.status_code == 200 and again.json()["cached"] is True

        sldc = await client.post("/losses/sldc", json={"main_client_id": plant.id, "month": MONTH, "year": YEAR})
        assert sldc.json() == {"sldc_gross_injection": 0.11, "sldc_gross_drawl": None, "discom": {"DGVCL": 0.1}}

    @pytest.mark.asyncio
    async def test_legacy_sldc_fields(self, client, plant):
        body = {"main_client_id": plant.id, "month": MONTH, "year": YEAR, "sldc_gross_injection": 0.2}
        res = await client.post("/losses", json=body)
        assert res.json()["main_block"]["gross_injection_mwh"] == pytest.approx(0.2)

    @pytest.mark.asyncio
    async def test_recent_without_data(self, client, plant):
        res = await client.post("/losses/recent", json={"main_client_id": plant.id, "month": MONTH, "year": YEAR})
        assert res.status_code == 404


class TestYearlyApi:

    @pytest.mark.asyncio
    async def test_period(self, client, plant):
        await client.post("/losses", json={"main_client_id": plant.id, "month": MONTH, "year": YEAR})
        body = {"main_client_id": plant.id, "start_month": 1, "start_year": 2025, "end_month": 3, "end_year": 2025}
        res = await client.post("/yearly", json=body)
        assert res.status_code == 200
        data = res.json()
        assert len(data["rows"]) == 3
        assert data["rows"][2]["main"]["injected_kwh"] == 95
        assert data["totals"]["label"] == "Total"

    @pytest.mark.asyncio
    async def test_reversed_range(self, client, plant):
        body = {"main_client_id": plant.id, "start_month": 5, "start_year": 2025, "end_month": 3, "end_year": 2025}
        assert (await client.post("/yearly", json=body)).status_code == 422


class TestTotalReportsApi:

    @pytest.mark.asyncio
    async def test_generate(self, client, plant):
        body = {"main_client_ids": [plant.id], "month": MONTH, "year": YEAR}
        res = await client.post("/total-reports", json=body)
        assert res.status_code == 201
        assert res.json()["clients"][0]["main_meter"]["gross_injected_units"] == 110
        assert (await client.post("/total-reports", json=body)).status_code == 200
        assert (await client.post("/total-reports", json={**body, "main_client_ids": []})).status_code == 422


class TestInputsApi:

    @pytest.mark.asyncio
    async def test_meter_data(self, client, db):
        main = await make_main(name="New Park", meter="NP-1", check=None)
        body = {
            "meter_no": "NP-1",
            "meter_type": "main",
            "client_type": "MainClient",
            "client_id": main.id,
            "month": MONTH,
            "year": YEAR,
            "entries": [
                {"date": "01-03-2025", "interval_start": "00:00", "active_export": 12.5},
                {"date": "01-03-2025", "interval_start": "00:15", "active_export": 7.5},
            ],
        }
        res = await client.post("/meter-data", json=body)
        assert res.status_code == 201
        record_id = res.json()["id"]
        assert (await client.post("/meter-data", json=body)).status_code == 409

        shown = await client.get(f"/meter-data/{record_id}")
        assert [e["active_export"] for e in shown.json()["entries"]] == [12.5, 7.5]

        listed = await client.get("/meter-data", params={"filter": '{"meter_no": "NP-1"}'})
        assert listed.status_code == 206
        assert listed.headers["Content-Range"] == "items 0-0/1"

        assert (await client.delete(f"/meter-data/{record_id}")).status_code == 204
        assert (await client.get(f"/meter-data/{record_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_logger_upsert(self, client, plant):
        sub_id = (await plant.sub_clients.all())[0].id
        body = {"sub_client_id": sub_id, "month": 4, "year": YEAR, "entries": {"01-04-2025": 12}}
        assert (await client.put("/logger-data", json=body)).status_code == 201
        res = await client.put("/logger-data", json={**body, "entries": {"01-04-2025": 13}})
        assert res.status_code == 200
        assert res.json()["entries"] == {"01-04-2025": 13}
        assert (await client.put("/logger-data", json={**body, "sub_client_id": 999})).status_code == 404


class TestAdminApi:

    @pytest.mark.asyncio
    async def test_month_reports(self, client, plant):
        res = await client.post("/admin/tasks/month-reports", json={"month": MONTH, "year": YEAR})
        assert res.status_code == 200
        data = res.json()
        assert data["failed"] == []
        assert data["done"][0]["daily_cached"] is False
