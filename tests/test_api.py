"""HTTP API end to end, over the mock adapters."""

from foodtruck.services.excel_manager import LINE_ITEMS_SHEET, ORDERS_SHEET, ExcelManager
from tests.conftest import bearer

MENU = [
    {"name": "Carnitas Taco", "category": "Tacos", "price": 4.5},
    {"name": "Chips & Salsa", "category": "Sides", "price": 3.25},
    {"name": "Horchata", "category": "Drinks", "price": 3.5, "menu_type": "drink"},
]


async def add_menu(client, headers) -> list[str]:
    ids = []
    for item in MENU:
        response = await client.post("/api/products", json=item, headers=headers)
        assert response.status_code == 201
        ids.append(response.json()["id"])
    return ids


async def account_id(client, headers) -> str:
    response = await client.get("/api/me", headers=headers)
    return response.json()["account"]["id"]


# =============================================================================
# ROOT, HEALTH, AUTH
# =============================================================================

async def test_root_and_health(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["environment"] == "development"

    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["database"] == "healthy"
    assert data["payment_service"] == "healthy"
    assert data["identity_service"] == "healthy"


async def test_missing_token_is_401(client):
    response = await client.get("/api/me")
    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": "not_authenticated",
        "detail": "Missing bearer token",
    }


async def test_first_login_needs_signup(client):
    response = await client.get("/api/me", headers=bearer("new-user", "new@example.com"))
    assert response.status_code == 200
    assert response.json()["needs_signup"] is True
    assert response.json()["profile"] is None


async def test_customer_signup_and_no_business_access(client):
    headers = bearer("cust-1", "cam@example.com", "Cam")
    response = await client.post("/api/me/signup", json={"kind": "customer"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["profile"]["kind"] == "customer"
    assert response.json()["account"] is None

    response = await client.get("/api/orders", headers=headers)
    assert response.status_code == 403
    assert response.json()["error"] == "permission_denied"


async def test_owner_signup_without_name_is_400(client):
    response = await client.post(
        "/api/me/signup", json={"kind": "business_owner"}, headers=bearer("owner-x", "x@example.com")
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


# =============================================================================
# ORDERS
# =============================================================================

async def test_public_order_flow(client, owner_headers):
    product_ids = await add_menu(client, owner_headers)
    truck = await account_id(client, owner_headers)

    response = await client.get("/api/menu", params={"account": truck})
    assert response.status_code == 200
    assert response.json()["preview"] is False
    assert {p["name"] for p in response.json()["products"]} == {m["name"] for m in MENU}

    blank = {"quantities": {pid: "" for pid in product_ids} | {product_ids[0]: "0"}}
    response = await client.post("/api/public/orders", params={"account": truck}, json=blank)
    assert response.status_code == 400
    assert response.json()["detail"] == "Please select at least one item."

    huge = {"quantities": {product_ids[0]: "100000000000000000000"}, "customer_name": "Greedy"}
    response = await client.post("/api/public/orders", params={"account": truck}, json=huge)
    assert response.status_code == 400

    response = await client.get("/api/orders", headers=owner_headers)
    assert response.json()["total"] == 0

    payload = {
        "quantities": {product_ids[0]: "3", product_ids[1]: "", product_ids[2]: 2},
        "customer_name": "Ana",
        "customer_phone": "555-010-2030",
    }
    response = await client.post("/api/public/orders", params={"account": truck}, json=payload)
    assert response.status_code == 201
    order = response.json()["order"]
    assert order["status"] == "pending"
    assert order["channel"] == "web_form"
    assert order["subtotal_amount"] == 20.5
    assert order["total_amount"] == 20.5
    assert [(i["product_id"], i["quantity"]) for i in order["line_items"]] == [
        (product_ids[0], 3),
        (product_ids[2], 2),
    ]

    response = await client.get("/api/customers", headers=owner_headers)
    assert [c["name"] for c in response.json()] == ["Ana"]
    assert order["customer_id"] == response.json()[0]["id"]


async def test_owner_order_and_status_updates(client, owner_headers):
    product_ids = await add_menu(client, owner_headers)

    response = await client.post(
        "/api/orders",
        json={
            "channel": "in_person",
            "items": [
                {"product_id": product_ids[0], "quantity": 2},
                {"product_id": product_ids[1], "quantity": 1, "unit_price": 2.0},
            ],
        },
        headers=owner_headers,
    )
    assert response.status_code == 201
    order = response.json()["order"]
    assert order["total_amount"] == 11.0
    order_id = order["id"]

    response = await client.post(f"/api/orders/{order_id}/status", json={}, headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "accepted"
    assert response.json()["accepted_at"] is not None

    response = await client.post(
        f"/api/orders/{order_id}/status", json={"status": "completed"}, headers=owner_headers
    )
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_transition"

    response = await client.post(f"/api/orders/{order_id}/payment", json={"method": "card"}, headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["payment_status"] == "paid"

    response = await client.post(
        f"/api/orders/{order_id}/status", json={"status": "refunded"}, headers=owner_headers
    )
    assert response.status_code == 200
    assert response.json()["payment_status"] == "refunded"
    assert response.json()["refund_id"].startswith("re_mock_")

    response = await client.get(f"/api/orders/{order_id}", headers=owner_headers)
    assert response.json()["status"] == "refunded"
    assert response.json()["refunded_at"] is not None


async def test_empty_owner_order_is_400(client, owner_headers):
    response = await client.post("/api/orders", json={"items": []}, headers=owner_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "empty_order"


async def test_unknown_order_is_404(client, owner_headers):
    response = await client.get("/api/orders/nope", headers=owner_headers)
    assert response.status_code == 404


async def test_orders_are_scoped_to_the_account(client, owner_headers):
    product_ids = await add_menu(client, owner_headers)
    response = await client.post(
        "/api/orders", json={"items": [{"product_id": product_ids[0], "quantity": 1}]}, headers=owner_headers
    )
    order_id = response.json()["order"]["id"]

    rival = bearer("owner-2", "rival@example.com")
    await client.post("/api/me/signup", json={"kind": "business_owner", "business_name": "Rival"}, headers=rival)

    response = await client.get(f"/api/orders/{order_id}", headers=rival)
    assert response.status_code == 404
    response = await client.post(
        "/api/orders", json={"items": [{"product_id": product_ids[0], "quantity": 1}]}, headers=rival
    )
    assert response.status_code == 400


# =============================================================================
# MENU, INVENTORY, MESSAGES
# =============================================================================

async def test_product_patch_with_null_required_field_is_400(client, owner_headers):
    product_ids = await add_menu(client, owner_headers)

    for body in ({"is_active": None}, {"name": None}):
        response = await client.patch(f"/api/products/{product_ids[0]}", json=body, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["success"] is False

    response = await client.patch(f"/api/products/{product_ids[0]}", json={"category": None}, headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["category"] is None
    assert response.json()["is_active"] is True


async def test_inventory_and_supplier_purchases(client, owner_headers):
    product_ids = await add_menu(client, owner_headers)

    response = await client.post(
        "/api/supplier-transactions",
        json={"supplier_name": "Restaurant Depot", "total_amount": 54.0, "currency": "usd"},
        headers=owner_headers,
    )
    assert response.status_code == 201
    purchase_id = response.json()["id"]

    response = await client.post(
        f"/api/products/{product_ids[1]}/inventory-events",
        json={"type": "purchase", "quantity_delta": 30, "unit_cost": 1.8, "supplier_transaction_id": purchase_id},
        headers=owner_headers,
    )
    assert response.status_code == 201
    assert response.json()["current_stock"] == 30

    response = await client.post(
        f"/api/products/{product_ids[1]}/inventory-events",
        json={"type": "waste", "quantity_delta": -2, "reason": "stale"},
        headers=owner_headers,
    )
    assert response.json()["current_stock"] == 28

    response = await client.get(f"/api/products/{product_ids[1]}", headers=owner_headers)
    assert response.json()["current_stock"] == 28

    response = await client.get("/api/inventory-events", params={"product_id": product_ids[1]}, headers=owner_headers)
    assert sorted(e["quantity_delta"] for e in response.json()) == [-2, 30]

    response = await client.get("/api/supplier-transactions", headers=owner_headers)
    assert [t["supplier_name"] for t in response.json()] == ["Restaurant Depot"]

    response = await client.post(
        "/api/products/nope/inventory-events",
        json={"type": "sale", "quantity_delta": -1},
        headers=owner_headers,
    )
    assert response.status_code == 404


async def test_ready_notice_shows_in_order_messages(client, owner_headers):
    product_ids = await add_menu(client, owner_headers)
    truck = await account_id(client, owner_headers)
    response = await client.post(
        "/api/public/orders",
        params={"account": truck},
        json={"quantities": {product_ids[0]: 1}, "customer_name": "Ana", "customer_phone": "555-010-2030"},
    )
    order_id = response.json()["order"]["id"]

    response = await client.get(f"/api/orders/{order_id}/messages", headers=owner_headers)
    assert response.json() == []

    for _ in range(3):
        await client.post(f"/api/orders/{order_id}/status", json={}, headers=owner_headers)

    response = await client.get(f"/api/orders/{order_id}/messages", headers=owner_headers)
    assert response.status_code == 200
    [message] = response.json()
    assert message["channel"] == "sms"
    assert message["status"] == "sent"
    assert "Taco Loco" in message["body"]

    response = await client.get("/api/messages", params={"customer_id": message["customer_id"]}, headers=owner_headers)
    assert [m["id"] for m in response.json()] == [message["id"]]

    response = await client.get("/api/orders/nope/messages", headers=owner_headers)
    assert response.status_code == 404


# =============================================================================
# DASHBOARD & EXPORT
# =============================================================================

async def test_dashboard(client, owner_headers):
    product_ids = await add_menu(client, owner_headers)
    for items in (
        [{"product_id": product_ids[0], "quantity": 3}, {"product_id": product_ids[1], "quantity": 5}],
        [{"product_id": product_ids[0], "quantity": 2}],
    ):
        await client.post("/api/orders", json={"items": items}, headers=owner_headers)

    response = await client.get("/api/dashboard", headers=owner_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["summaries"]["today"] == {"count": 2, "revenue": 38.75}
    assert data["summaries"]["last_7_days"] == {"count": 2, "revenue": 38.75}
    assert data["summaries"]["all_time"] == {"count": 2, "revenue": 38.75}
    assert [(p["name"], p["quantity"]) for p in data["top_products"]] == [
        ("Carnitas Taco", 5),
        ("Chips & Salsa", 5),
    ]
    assert len(data["recent_orders"]) == 2


async def test_orders_export_writes_workbook(app, client, owner_headers):
    product_ids = await add_menu(client, owner_headers)
    await client.post(
        "/api/orders",
        json={"items": [{"product_id": product_ids[0], "quantity": 1}, {"product_id": product_ids[2], "quantity": 2}]},
        headers=owner_headers,
    )
    truck = await account_id(client, owner_headers)

    response = await client.post("/api/reports/orders-export", headers=owner_headers)
    assert response.status_code == 202
    assert response.json()["task_id"]

    manager = ExcelManager(app.state.settings.data_directory)
    sheets = manager.read_account_export(truck)
    assert len(sheets[ORDERS_SHEET]) == 1
    assert len(sheets[LINE_ITEMS_SHEET]) == 2
    assert sheets[ORDERS_SHEET]["total_amount"].iloc[0] == 11.5
    manager.clear_account(truck)


# =============================================================================
# ACCOUNT, STAFF, LOCATIONS, TRUCKS
# =============================================================================

async def test_staff_invitation_and_roles(client, owner_headers):
    response = await client.post(
        "/api/account/users",
        json={"email": "cook@example.com", "first_name": "Carl"},
        headers=owner_headers,
    )
    assert response.status_code == 201
    assert response.json()["status"] == "invited"

    cook = bearer("cook-1", "cook@example.com", "Carl Cook")
    response = await client.post("/api/me/signup", json={"kind": "staff"}, headers=cook)
    assert response.status_code == 200
    assert response.json()["profile"]["kind"] == "staff"

    response = await client.get("/api/account/users", headers=cook)
    assert {u["status"] for u in response.json()} == {"active"}

    response = await client.post(
        "/api/account/users", json={"email": "dish@example.com", "first_name": "Dee"}, headers=cook
    )
    assert response.status_code == 403

    response = await client.patch("/api/account", json={"city": "Brooklyn"}, headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["city"] == "Brooklyn"


async def test_menu_preview_for_owner(client, owner_headers):
    await add_menu(client, owner_headers)

    response = await client.get("/api/menu", headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["preview"] is True

    response = await client.get("/api/menu")
    assert response.status_code == 400

    response = await client.get("/api/menu", params={"account": "missing"})
    assert response.status_code == 404


async def test_locations_and_truck_discovery(client, owner_headers):
    response = await client.post(
        "/api/locations",
        json={"name": "Union Square", "city": "New York", "latitude": 40.7359, "longitude": -73.9911},
        headers=owner_headers,
    )
    assert response.status_code == 201

    response = await client.post(
        "/api/locations",
        json={"name": "Depot", "address1": "1 Main St", "city": "New York"},
        headers=owner_headers,
    )
    assert response.status_code == 201
    assert response.json()["latitude"] is not None

    response = await client.post(
        "/api/locations",
        json={"name": "Boston Pop-up", "city": "Boston", "latitude": 42.3601, "longitude": -71.0589},
        headers=owner_headers,
    )
    assert response.status_code == 201

    response = await client.get("/api/trucks", params={"city": "new york"})
    assert {t["location_name"] for t in response.json()} == {"Union Square", "Depot"}
    assert all(t["account_name"] == "Taco Loco" for t in response.json())

    response = await client.get("/api/trucks", params={"lat": 42.36, "lng": -71.06, "radius_miles": 10})
    assert [t["location_name"] for t in response.json()] == ["Boston Pop-up"]
    assert response.json()[0]["distance_miles"] < 1

    response = await client.get("/api/trucks", params={"lat": 40.73, "lng": -73.99})
    names = [t["location_name"] for t in response.json()]
    assert names[-1] == "Boston Pop-up"

    response = await client.get("/api/trucks", params={"lat": 40.73})
    assert response.status_code == 400


async def test_location_pings(client, owner_headers):
    for lat in (40.70, 40.71):
        response = await client.post(
            "/api/locations/pings", json={"latitude": lat, "longitude": -74.0}, headers=owner_headers
        )
        assert response.status_code == 201

    response = await client.get("/api/locations/pings", headers=owner_headers)
    assert len(response.json()) == 2
    assert response.json()[0]["source"] == "gps"
