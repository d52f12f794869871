"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Race for the last spots
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Class creation needs an admin account; pass its credentials with
LOCUST_ADMIN_EMAIL and LOCUST_ADMIN_PASSWORD.
"""

import os
import random
import string
from locust import HttpUser, task, between, tag, events
from datetime import datetime, timezone, timedelta

ADMIN_EMAIL = os.environ.get("LOCUST_ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.environ.get("LOCUST_ADMIN_PASSWORD", "admin12345")
CONCURRENCY_CAPACITY = 10
PASSWORD = "loadtest123"

# Shared state
CLASS_IDS = []
CONCURRENCY_CLASS_ID = None


def random_email():
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=10))
    return f"load_{suffix}@test.com"


def register_and_login(client):
    """Register a fresh member and return auth headers, or {} on failure."""
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "password": PASSWORD,
        "first_name": "Load",
        "last_name": "Tester",
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def admin_headers(client):
    resp = client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def class_payload(title, capacity, days_ahead):
    return {
        "title": title,
        "description": "Load test class",
        "instructor": "Locust",
        "max_capacity": capacity,
        "scheduled_at": (datetime.now(timezone.utc) + timedelta(days=days_ahead)).isoformat(),
        "duration_minutes": 60,
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: concurrency class gets {CONCURRENCY_CAPACITY} spots")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 members race for 10 spots

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings WHERE class_id = X AND status = 'confirmed';
    Must be <= 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global CONCURRENCY_CLASS_ID
        self.headers = register_and_login(self.client)

        if CONCURRENCY_CLASS_ID is None:
            headers = admin_headers(self.client)
            resp = self.client.post(
                "/api/v1/classes/",
                json=class_payload("Concurrency Test Class", CONCURRENCY_CAPACITY, 30),
                headers=headers,
            )
            if resp.status_code == 201:
                CONCURRENCY_CLASS_ID = resp.json()["id"]
                print(f"\nCreated class {CONCURRENCY_CLASS_ID} with {CONCURRENCY_CAPACITY} spots\n")

    @tag("concurrency")
    @task
    def book_last_spots(self):
        """Every member books the same class once."""
        if not CONCURRENCY_CLASS_ID or not self.headers:
            return

        with self.client.post(
            f"/api/v1/bookings/{CONCURRENCY_CLASS_ID}",
            headers=self.headers,
            name="/api/v1/bookings/{class_id}",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 201):
                resp.success()
            elif resp.status_code == 400 and resp.json().get("code") in ("class_full", "already_booked"):
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Conflict after exhausting retries; client may retry
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false on the API, run again
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_classes_cached(self):
        resp = self.client.get("/api/v1/classes/", name="/api/v1/classes/ [cached]")
        if resp.status_code == 200:
            for item in resp.json().get("classes", []):
                if item["id"] not in CLASS_IDS:
                    CLASS_IDS.append(item["id"])

    @tag("throughput", "read")
    @task(3)
    def get_class_detail(self):
        if CLASS_IDS:
            self.client.get(f"/api/v1/classes/{random.choice(CLASS_IDS)}", name="/api/v1/classes/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register_and_login(self.client)

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_class(self):
        with self.client.post("/api/v1/bookings/999999", headers=self.headers,
                              name="/api/v1/bookings/{missing}", catch_response=True) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def non_numeric_class_id(self):
        with self.client.post("/api/v1/bookings/abc", headers=self.headers,
                              name="/api/v1/bookings/{bad}", catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def cancel_without_booking(self):
        with self.client.delete("/api/v1/bookings/999999", headers=self.headers,
                                name="/api/v1/bookings/{missing}", catch_response=True) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def member_creates_class(self):
        with self.client.post("/api/v1/classes/", json=class_payload("Nope", 5, 3),
                              headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [403])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/bookings/1", name="/api/v1/bookings/{noauth}",
                              catch_response=True) as resp:
            self._expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some bookings and cancellations.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register_and_login(self.client)
        self.booked = set()

    @task(50)
    def browse_classes(self):
        resp = self.client.get("/api/v1/classes/")
        if resp.status_code == 200:
            for item in resp.json().get("classes", []):
                if item["id"] not in CLASS_IDS:
                    CLASS_IDS.append(item["id"])

    @task(20)
    def view_class(self):
        if CLASS_IDS:
            self.client.get(f"/api/v1/classes/{random.choice(CLASS_IDS)}", name="/api/v1/classes/{id}")

    @task(10)
    def book_class(self):
        if CLASS_IDS and self.headers:
            class_id = random.choice(CLASS_IDS)
            resp = self.client.post(f"/api/v1/bookings/{class_id}", headers=self.headers,
                                    name="/api/v1/bookings/{class_id}")
            if resp.status_code in (200, 201):
                self.booked.add(class_id)

    @task(3)
    def cancel_booking(self):
        if self.booked and self.headers:
            class_id = self.booked.pop()
            self.client.delete(f"/api/v1/bookings/{class_id}", headers=self.headers,
                               name="/api/v1/bookings/{class_id}")

    @task(2)
    def my_bookings(self):
        if self.headers:
            self.client.get("/api/v1/bookings/", headers=self.headers)
