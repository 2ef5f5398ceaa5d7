"""Integration tests for booking endpoints."""

import pytest


async def book(test_client, headers, package, **services):
    body = {"packageId": str(package.id)}
    if services:
        body["selectedServices"] = services
    return await test_client.post("/api/booking/", headers=headers, json=body)


@pytest.mark.asyncio
async def test_create_booking_endpoint(test_client, user_headers, regular_user, make_package):
    """Test the booking creation endpoint prices the selected services."""
    package = await make_package()

    response = await book(test_client, user_headers, package, food=False, accommodation=True)

    assert response.status_code == 201
    data = response.json()
    assert data["totalPrice"] == 1100.0
    assert data["selectedServices"] == {"food": False, "accommodation": True}
    assert data["status"] == "accepted"
    assert data["bookingStatus"] == "upcoming"
    assert data["displayStatus"] == "accepted"
    assert data["package"]["_id"] == str(package.id)
    assert data["user"]["_id"] == str(regular_user.id)
    assert "bookingDate" in data


@pytest.mark.asyncio
async def test_create_booking_missing_auth(test_client, make_package):
    package = await make_package()

    response = await test_client.post("/api/booking/", json={"packageId": str(package.id)})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_booking_invalid_data(test_client, user_headers):
    response = await test_client.post("/api/booking/", headers=user_headers, json={"selectedServices": {}})

    assert response.status_code == 422
    data = response.json()
    assert data["status"] == 422
    assert any("packageId" in violation["path"] for violation in data["violations"])


@pytest.mark.asyncio
async def test_create_booking_unknown_package(test_client, user_headers):
    response = await test_client.post(
        "/api/booking/",
        headers=user_headers,
        json={"packageId": "00000000-0000-0000-0000-000000000000"},
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_my_bookings_endpoint(test_client, user_headers, admin_headers, make_package):
    """Test users only see their own bookings, filtered by status."""
    upcoming = await make_package()
    completed = await make_package(start_offset_days=-10, duration_days=2)
    await book(test_client, user_headers, upcoming)
    await book(test_client, user_headers, completed)
    await book(test_client, admin_headers, upcoming)

    response = await test_client.get("/api/booking/", headers=user_headers)
    assert response.status_code == 200
    assert len(response.json()) == 2

    response = await test_client.get("/api/booking/", headers=user_headers, params={"status": "completed"})
    data = response.json()
    assert len(data) == 1
    assert data[0]["package"]["_id"] == str(completed.id)
    assert data[0]["bookingStatus"] == "completed"


@pytest.mark.asyncio
async def test_invalid_status_filter_rejected_alike(test_client, user_headers, admin_headers):
    """Test both listings reject an unknown status with the same 400 problem."""
    mine = await test_client.get("/api/booking/", headers=user_headers, params={"status": "lost"})
    everyone = await test_client.get("/api/booking/package", headers=admin_headers, params={"status": "lost"})

    for response in (mine, everyone):
        assert response.status_code == 400
        assert "status" in response.json()["errors"]


@pytest.mark.asyncio
async def test_all_bookings_endpoint(test_client, user_headers, admin_headers, regular_user, make_package):
    first = await make_package()
    second = await make_package(to_location="Porto")
    await book(test_client, user_headers, first)
    await book(test_client, user_headers, second)
    await book(test_client, admin_headers, first)

    response = await test_client.get("/api/booking/package", headers=admin_headers)
    assert response.status_code == 200
    assert len(response.json()) == 3

    response = await test_client.get(
        "/api/booking/package",
        headers=admin_headers,
        params={"userId": str(regular_user.id), "packageId": str(second.id)},
    )
    data = response.json()
    assert len(data) == 1
    assert data[0]["package"]["toLocation"] == "Porto"


@pytest.mark.asyncio
async def test_all_bookings_requires_admin(test_client, user_headers):
    response = await test_client.get("/api/booking/package", headers=user_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_booking_status_endpoint(test_client, user_headers, admin_headers, make_package):
    package = await make_package()
    created = (await book(test_client, user_headers, package)).json()

    response = await test_client.put(
        f"/api/booking/{created['_id']}",
        headers=admin_headers,
        json={"status": "cancelled"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["displayStatus"] == "cancelled"
    assert data["bookingStatus"] == "upcoming"

    response = await test_client.get("/api/booking/", headers=user_headers, params={"status": "cancelled"})
    assert [booking["_id"] for booking in response.json()] == [created["_id"]]


@pytest.mark.asyncio
async def test_update_booking_status_invalid(test_client, user_headers, admin_headers, make_package):
    package = await make_package()
    created = (await book(test_client, user_headers, package)).json()

    response = await test_client.put(
        f"/api/booking/{created['_id']}",
        headers=admin_headers,
        json={"status": "upcoming"},
    )
    assert response.status_code == 422

    response = await test_client.put(
        f"/api/booking/{created['_id']}",
        headers=user_headers,
        json={"status": "cancelled"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_booking_analytics_endpoint(test_client, user_headers, admin_headers, regular_user, make_package):
    package = await make_package()
    await book(test_client, user_headers, package)
    await book(test_client, user_headers, package, accommodation=True)

    response = await test_client.get("/api/booking/analytics", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["totalBookings"] == 2
    assert data["totalRevenue"] == 2200.0
    assert data["statusCounts"] == {"completed": 0, "active": 0, "upcoming": 2}
    assert data["topUsers"][0]["_id"] == str(regular_user.id)
    assert data["topUsers"][0]["bookingsCount"] == 2
    assert data["topUsers"][0]["totalSpent"] == 2200.0


@pytest.mark.asyncio
async def test_metrics_count_bookings(test_client, user_headers, make_package):
    package = await make_package()
    await book(test_client, user_headers, package)

    response = await test_client.get("/metrics")

    assert response.status_code == 200
    assert "bookings_created_total" in response.text


@pytest.mark.asyncio
async def test_booking_routes_without_trailing_slash(test_client, user_headers, make_package):
    """Test the collection routes answer directly without a redirect."""
    package = await make_package()

    response = await test_client.post("/api/booking", headers=user_headers, json={"packageId": str(package.id)})

    assert response.status_code == 201
    assert response.json()["package"]["_id"] == str(package.id)

    response = await test_client.get("/api/booking", headers=user_headers)

    assert response.status_code == 200
    assert len(response.json()) == 1
