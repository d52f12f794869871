"""
Tests for admin user management.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from class_booking.models.booking import Booking
from class_booking.models.user import UserRole

from factories import headers_for, make_user


@pytest.mark.asyncio
async def test_list_users_with_booking_counts(client: AsyncClient, admin_headers, auth_headers, test_user, test_class):
    await client.post(f"/api/v1/bookings/{test_class.id}", headers=auth_headers)

    response = await client.get("/api/v1/users/", headers=admin_headers)
    assert response.status_code == 200
    counts = {u["email"]: u["booking_count"] for u in response.json()}
    assert counts == {"test@example.com": 1, "admin@example.com": 0}


@pytest.mark.asyncio
async def test_member_cannot_manage_users(client: AsyncClient, auth_headers):
    response = await client.get("/api/v1/users/", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_superuser_cannot_manage_users(client: AsyncClient, db_session):
    superuser = await make_user(db_session, "super@example.com", role=UserRole.SUPERUSER)
    response = await client.get("/api/v1/users/", headers=headers_for(superuser))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_creates_user_with_role(client: AsyncClient, admin_headers):
    response = await client.post("/api/v1/users/", json={
        "email": "coach@example.com",
        "password": "coachpassword1",
        "first_name": "Casey",
        "last_name": "Coach",
        "role": "superuser",
    }, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["role"] == "superuser"


@pytest.mark.asyncio
async def test_get_user(client: AsyncClient, admin_headers, test_user):
    response = await client.get(f"/api/v1/users/{test_user.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["email"] == "test@example.com"

    missing = await client.get("/api/v1/users/99999", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_update_user(client: AsyncClient, admin_headers, test_user):
    response = await client.put(
        f"/api/v1/users/{test_user.id}",
        json={"first_name": "Jordan", "role": "admin"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["first_name"] == "Jordan"
    assert data["role"] == "admin"


@pytest.mark.asyncio
async def test_update_user_email_taken(client: AsyncClient, admin_headers, test_user):
    response = await client.put(
        f"/api/v1/users/{test_user.id}", json={"email": "admin@example.com"}, headers=admin_headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_user_password(client: AsyncClient, admin_headers, test_user):
    await client.put(f"/api/v1/users/{test_user.id}", json={"password": "brandnewpass1"}, headers=admin_headers)

    login = await client.post("/api/v1/auth/login", json={"email": "test@example.com", "password": "brandnewpass1"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_admin_cannot_demote_self(client: AsyncClient, admin_user, admin_headers):
    response = await client.put(f"/api/v1/users/{admin_user.id}", json={"role": "user"}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client: AsyncClient, admin_user, admin_headers):
    response = await client.delete(f"/api/v1/users/{admin_user.id}", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_user_removes_bookings(
    client: AsyncClient, session_factory, admin_headers, auth_headers, test_user, test_class
):
    await client.post(f"/api/v1/bookings/{test_class.id}", headers=auth_headers)

    response = await client.delete(f"/api/v1/users/{test_user.id}", headers=admin_headers)
    assert response.status_code == 200

    async with session_factory() as session:
        remaining = (await session.execute(select(Booking).where(Booking.user_id == test_user.id))).all()
    assert remaining == []

    # The freed spot is visible again, and the old token no longer works
    detail = await client.get(f"/api/v1/classes/{test_class.id}")
    assert detail.json()["booked_count"] == 0
    assert (await client.get("/api/v1/auth/me", headers=auth_headers)).status_code == 401
