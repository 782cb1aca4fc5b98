"""HTTP tests for the /api/v1/users endpoints."""

from fastapi.testclient import TestClient

from src.accounts.core.services import InMemoryWelcomeEmailQueue

USERS = "/api/v1/users"


def _create(client: TestClient, payload: dict) -> dict:
    response = client.post(USERS, json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCreateUser:
    def test_create_returns_resource(self, client: TestClient, user_payload):
        response = client.post(USERS, json=user_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User created successfully"
        data = body["data"]
        assert data["full_name"] == "John Doe"
        assert data["primary_email"] == "john@example.com"
        assert [e["email"] for e in data["emails"]] == [
            "john@example.com",
            "john.work@example.com",
        ]
        assert "password" not in data
        assert "password_hash" not in data

    def test_missing_fields(self, client: TestClient):
        response = client.post(USERS, json={})

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert {"first_name", "last_name", "password", "emails"} <= set(body["errors"])
        assert body["errors"]["first_name"] == ["The first name field is required."]

    def test_invalid_lengths_and_formats(self, client: TestClient, user_payload):
        response = client.post(
            USERS,
            json=user_payload(
                first_name="x" * 256,
                last_name="y" * 256,
                phone="not-a-phone!",
                emails=[{"email": "invalid-email"}],
            ),
        )

        assert response.status_code == 422
        errors = response.json()["errors"]
        assert {"first_name", "last_name", "phone", "emails.0.email"} <= set(errors)

    def test_duplicate_address_rejected(self, client: TestClient, user_payload):
        _create(client, user_payload())

        response = client.post(
            USERS,
            json=user_payload(emails=[{"email": "john@example.com"}]),
        )

        assert response.status_code == 422
        assert response.json()["errors"] == {
            "emails.0.email": ["This email address is already taken"]
        }

    def test_markup_is_stripped(self, client: TestClient, user_payload):
        data = _create(
            client,
            user_payload(first_name='<script>alert("xss")</script>', last_name="  Doe  "),
        )

        assert "<script>" not in data["first_name"]
        assert "alert" in data["first_name"]
        assert data["last_name"] == "Doe"

    def test_mass_assignment_ignored(self, client: TestClient, user_payload):
        data = _create(
            client,
            user_payload(id="chosen-id", created_at="2000-01-01T00:00:00Z"),
        )

        assert data["id"] != "chosen-id"
        assert not data["created_at"].startswith("2000")


class TestReadUsers:
    def test_show(self, client: TestClient, user_payload):
        created = _create(client, user_payload())

        response = client.get(f"{USERS}/{created['id']}")

        assert response.status_code == 200
        assert response.json()["data"]["id"] == created["id"]

    def test_show_unknown(self, client: TestClient):
        response = client.get(f"{USERS}/missing")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "User not found"}

    def test_list_with_pagination(self, client: TestClient, user_payload):
        for i in range(3):
            _create(
                client,
                user_payload(first_name=f"User{i}", emails=[{"email": f"u{i}@example.com"}]),
            )

        response = client.get(USERS, params={"per_page": 2, "page": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["data"]) == 1
        assert body["pagination"] == {
            "current_page": 2,
            "per_page": 2,
            "total": 3,
            "last_page": 2,
        }

    def test_list_search(self, client: TestClient, user_payload):
        _create(client, user_payload())
        _create(
            client,
            user_payload(
                first_name="Anna",
                last_name="Kowalska",
                emails=[{"email": "anna@example.pl"}],
            ),
        )

        body = client.get(USERS, params={"search": "anna"}).json()

        assert [u["first_name"] for u in body["data"]] == ["Anna"]

    def test_list_rejects_bad_paging(self, client: TestClient):
        assert client.get(USERS, params={"page": 0}).status_code == 422
        assert client.get(USERS, params={"per_page": 0}).status_code == 422

    def test_per_page_capped(self, client: TestClient):
        body = client.get(USERS, params={"per_page": 500}).json()
        assert body["pagination"]["per_page"] == 100


class TestUpdateUser:
    def test_patch_scalar_fields(self, client: TestClient, user_payload):
        created = _create(client, user_payload())

        response = client.patch(f"{USERS}/{created['id']}", json={"last_name": "Smith"})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "User updated successfully"
        assert body["data"]["full_name"] == "John Smith"
        assert len(body["data"]["emails"]) == 2

    def test_put_replaces_emails(self, client: TestClient, user_payload):
        created = _create(client, user_payload())

        response = client.put(
            f"{USERS}/{created['id']}",
            json={"emails": [{"email": "new@example.com"}, {"email": "john@example.com"}]},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["primary_email"] == "new@example.com"
        assert {e["email"] for e in data["emails"]} == {"new@example.com", "john@example.com"}

    def test_null_phone_keeps_it(self, client: TestClient, user_payload):
        created = _create(client, user_payload())

        response = client.patch(f"{USERS}/{created['id']}", json={"phone": None})

        assert response.status_code == 200
        assert response.json()["data"]["phone"] == "+48123456789"

    def test_null_fields_rejected(self, client: TestClient, user_payload):
        created = _create(client, user_payload())

        response = client.patch(
            f"{USERS}/{created['id']}",
            json={"first_name": None, "last_name": None, "password": None, "emails": None},
        )

        assert response.status_code == 422
        errors = response.json()["errors"]
        assert errors["first_name"] == ["The first name field must be a string."]
        assert errors["emails"] == ["The emails field must be an array."]
        assert set(errors) == {"first_name", "last_name", "password", "emails"}

        unchanged = client.get(f"{USERS}/{created['id']}").json()["data"]
        assert unchanged["first_name"] == "John"
        assert len(unchanged["emails"]) == 2

    def test_update_unknown(self, client: TestClient):
        response = client.patch(f"{USERS}/missing", json={"first_name": "X"})
        assert response.status_code == 404


class TestDeleteUser:
    def test_delete(self, client: TestClient, user_payload):
        created = _create(client, user_payload())

        response = client.delete(f"{USERS}/{created['id']}")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "User deleted successfully",
            "data": None,
        }
        assert client.get(f"{USERS}/{created['id']}").status_code == 404

    def test_delete_unknown(self, client: TestClient):
        assert client.delete(f"{USERS}/missing").status_code == 404


class TestSendWelcome:
    def test_queues_jobs(
        self,
        client: TestClient,
        user_payload,
        welcome_queue: InMemoryWelcomeEmailQueue,
    ):
        created = _create(client, user_payload())

        response = client.post(f"{USERS}/{created['id']}/send-welcome")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Welcome email job queued for 2 email addresses",
            "emails_count": 2,
            "emails": ["john@example.com", "john.work@example.com"],
        }
        assert len(welcome_queue.jobs) == 2

    def test_unknown_user(self, client: TestClient):
        assert client.post(f"{USERS}/missing/send-welcome").status_code == 404

    def test_user_without_emails(self, client: TestClient, user_payload):
        created = _create(client, user_payload(emails=[{"email": "only@example.com"}]))
        email_id = created["emails"][0]["id"]
        client.delete(f"{USERS}/{created['id']}/emails/{email_id}")

        response = client.post(f"{USERS}/{created['id']}/send-welcome")

        assert response.status_code == 400
        assert response.json()["message"] == "User has no email addresses"
