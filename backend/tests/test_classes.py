"""
Tests for class endpoints: listing, detail and admin management.
"""

from datetime import datetime, timezone, timedelta

import pytest
from httpx import AsyncClient

from class_booking.models.user import UserRole

from factories import headers_for, make_user


def class_payload(**overrides):
    payload = {
        "title": "Evening Pilates",
        "description": "Core strength",
        "instructor": "Morgan",
        "max_capacity": 12,
        "scheduled_at": (datetime.now(timezone.utc) + timedelta(days=3)).isoformat(),
        "duration_minutes": 45,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_class(client: AsyncClient, admin_headers):
    """Admin can create a class; every spot starts open."""
    response = await client.post("/api/v1/classes/", json=class_payload(), headers=admin_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Evening Pilates"
    assert data["max_capacity"] == 12
    assert data["booked_count"] == 0
    assert data["available_spots"] == 12


@pytest.mark.asyncio
async def test_superuser_can_create_class(client: AsyncClient, db_session):
    superuser = await make_user(db_session, "super@example.com", role=UserRole.SUPERUSER)
    response = await client.post("/api/v1/classes/", json=class_payload(), headers=headers_for(superuser))
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_member_cannot_create_class(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/classes/", json=class_payload(), headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_class_unauthenticated(client: AsyncClient):
    response = await client.post("/api/v1/classes/", json=class_payload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_class_in_past(client: AsyncClient, admin_headers):
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    response = await client.post("/api/v1/classes/", json=class_payload(scheduled_at=past), headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("capacity", [0, -3])
async def test_create_class_invalid_capacity(client: AsyncClient, admin_headers, capacity):
    response = await client.post("/api/v1/classes/", json=class_payload(max_capacity=capacity), headers=admin_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_upcoming_classes(client: AsyncClient, auth_headers, test_class, past_class):
    """Listing shows only upcoming classes with their booked counts."""
    await client.post(f"/api/v1/bookings/{test_class.id}", headers=auth_headers)

    response = await client.get("/api/v1/classes/")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["cached"] is False
    listed = data["classes"][0]
    assert listed["id"] == test_class.id
    assert listed["booked_count"] == 1
    assert listed["available_spots"] == 9


@pytest.mark.asyncio
async def test_get_class_detail(client: AsyncClient, auth_headers, test_class):
    await client.post(f"/api/v1/bookings/{test_class.id}", headers=auth_headers)

    response = await client.get(f"/api/v1/classes/{test_class.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["booked_count"] == 1
    assert data["participants"][0]["first_name"] == "Jamie"


@pytest.mark.asyncio
async def test_get_missing_class(client: AsyncClient):
    response = await client.get("/api/v1/classes/99999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_class(client: AsyncClient, admin_headers, test_class):
    response = await client.put(
        f"/api/v1/classes/{test_class.id}",
        json={"title": "Power Yoga", "max_capacity": 20},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Power Yoga"
    assert data["max_capacity"] == 20
    assert data["instructor"] == "Alex"


@pytest.mark.asyncio
async def test_capacity_cannot_drop_below_booked(client: AsyncClient, db_session, admin_headers, test_class):
    for i in range(3):
        member = await make_user(db_session, f"m{i}@example.com")
        await client.post(f"/api/v1/bookings/{test_class.id}", headers=headers_for(member))

    response = await client.put(
        f"/api/v1/classes/{test_class.id}", json={"max_capacity": 2}, headers=admin_headers
    )
    assert response.status_code == 400

    response = await client.put(
        f"/api/v1/classes/{test_class.id}", json={"max_capacity": 3}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["available_spots"] == 0


@pytest.mark.asyncio
async def test_reduced_capacity_applies_to_next_booking(client: AsyncClient, db_session, admin_headers, test_class):
    member = await make_user(db_session, "first@example.com")
    await client.post(f"/api/v1/bookings/{test_class.id}", headers=headers_for(member))
    await client.put(f"/api/v1/classes/{test_class.id}", json={"max_capacity": 1}, headers=admin_headers)

    late = await make_user(db_session, "late@example.com")
    response = await client.post(f"/api/v1/bookings/{test_class.id}", headers=headers_for(late))
    assert response.status_code == 400
    assert response.json()["code"] == "class_full"


@pytest.mark.asyncio
async def test_delete_class(client: AsyncClient, admin_headers, auth_headers, test_class):
    response = await client.delete(f"/api/v1/classes/{test_class.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["class_id"] == test_class.id

    assert (await client.get(f"/api/v1/classes/{test_class.id}")).status_code == 404
    booking = await client.post(f"/api/v1/bookings/{test_class.id}", headers=auth_headers)
    assert booking.status_code == 404
    assert booking.json()["code"] == "class_not_found"


@pytest.mark.asyncio
async def test_member_cannot_delete_class(client: AsyncClient, auth_headers, test_class):
    response = await client.delete(f"/api/v1/classes/{test_class.id}", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_counts_agree_with_booking_core(client: AsyncClient, db_session, guard, test_class):
    """Listing, detail and the capacity guard count the same confirmed bookings."""
    members = [await make_user(db_session, f"counted{i}@example.com") for i in range(3)]
    for member in members:
        await guard.attempt_book(member.id, test_class.id)
    await guard.cancel_booking(members[0].id, test_class.id)

    expected = await guard.get_confirmed_count(test_class.id)
    listed = (await client.get("/api/v1/classes/")).json()["classes"][0]
    detail = (await client.get(f"/api/v1/classes/{test_class.id}")).json()

    assert expected == 2
    assert listed["booked_count"] == expected
    assert detail["booked_count"] == expected
    assert len(detail["participants"]) == expected
