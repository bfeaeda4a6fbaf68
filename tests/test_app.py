"""Application assembly from an explicit settings object."""

from httpx import ASGITransport, AsyncClient

from foodtruck.celery_worker import celery_app
from foodtruck.core.config import get_settings
from foodtruck.database import drop_db, init_db
from foodtruck.main import create_app
from foodtruck.services.excel_manager import ORDERS_SHEET, ExcelManager
from foodtruck.services.geo import MockGeoService
from foodtruck.services.notifications import MockNotificationService
from foodtruck.services.payment import MockPaymentService
from tests.conftest import bearer


def test_app_builds_its_resources_from_the_given_settings(tmp_path):
    settings = get_settings().model_copy(update={
        "data_directory": str(tmp_path),
        "mock_failure_rate": 0.25,
    })
    app = create_app(settings)

    assert app.state.settings is settings
    assert str(app.state.engine.url) == settings.database_url
    assert isinstance(app.state.payment_service, MockPaymentService)
    assert app.state.payment_service.failure_rate == 0.25
    assert isinstance(app.state.geo_service, MockGeoService)
    assert isinstance(app.state.notification_service, MockNotificationService)
    assert celery_app.conf.task_always_eager is True


async def test_export_lands_in_the_app_data_directory(tmp_path):
    settings = get_settings().model_copy(update={"data_directory": str(tmp_path / "exports")})
    app = create_app(settings)
    await init_db(app.state.engine)
    headers = bearer("owner-9", "owner@wafflewagon.example", "Wren Owner")

    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/me/signup",
                json={"kind": "business_owner", "business_name": "Waffle Wagon"},
                headers=headers,
            )
            truck = response.json()["account"]["id"]
            response = await client.post("/api/products", json={"name": "Waffle", "price": 6.0}, headers=headers)
            await client.post(
                "/api/orders",
                json={"items": [{"product_id": response.json()["id"], "quantity": 2}]},
                headers=headers,
            )

            response = await client.post("/api/reports/orders-export", headers=headers)
            assert response.status_code == 202
    finally:
        await drop_db(app.state.engine)
        await app.state.engine.dispose()

    sheets = ExcelManager(tmp_path / "exports").read_account_export(truck)
    assert sheets[ORDERS_SHEET]["total_amount"].tolist() == [12.0]
