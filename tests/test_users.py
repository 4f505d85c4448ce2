"""Tests for the users router."""

from models import Car, Incident, IncidentUpdate, User


def seed_incident(db, user_id):
    car = Car(make="Maruti", model="Swift", year=2019, license_plate="KL-11-Z-1")
    db.add(car)
    db.commit()
    incident = Incident(car_id=car.id, reported_by_id=user_id, title="Flat tyre", description="NH66")
    db.add(incident)
    db.commit()
    return incident


class TestUsers:

    def test_create_defaults_to_driver(self, admin_client):
        response = admin_client.post("/api/users", json={"email": "anu@example.com", "name": "Anu"})

        assert response.status_code == 201
        assert response.json()["role"] == "DRIVER"

    def test_invalid_email(self, admin_client):
        response = admin_client.post("/api/users", json={"email": "not-an-email", "name": "Anu"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid email format"

    def test_duplicate_email(self, admin_client):
        admin_client.post("/api/users", json={"email": "anu@example.com", "name": "Anu"})

        response = admin_client.post("/api/users", json={"email": "anu@example.com", "name": "Another"})

        assert response.status_code == 409
        assert response.json()["detail"] == "User with this email already exists"

    def test_role_filter_and_name_order(self, admin_client):
        admin_client.post("/api/users", json={"email": "z@example.com", "name": "Zara", "role": "ADMIN"})
        admin_client.post("/api/users", json={"email": "b@example.com", "name": "Biju", "role": "fleet_manager"})
        admin_client.post("/api/users", json={"email": "a@example.com", "name": "Anu"})

        everyone = admin_client.get("/api/users").json()
        managers = admin_client.get("/api/users", params={"role": "FLEET_MANAGER"}).json()

        assert [u["name"] for u in everyone] == ["Anu", "Biju", "Zara"]
        assert [u["name"] for u in managers] == ["Biju"]

    def test_get_with_activity(self, admin_client, db_session):
        user_id = admin_client.post("/api/users", json={"email": "anu@example.com", "name": "Anu"}).json()["id"]
        seed_incident(db_session, user_id)

        user = admin_client.get(f"/api/users/{user_id}").json()

        assert user["counts"]["incidents_reported"] == 1
        assert user["incidents_reported"][0]["title"] == "Flat tyre"
        assert user["incidents_assigned"] == []

    def test_update_role(self, admin_client):
        user_id = admin_client.post("/api/users", json={"email": "anu@example.com", "name": "Anu"}).json()["id"]

        response = admin_client.put(f"/api/users/{user_id}", json={"role": "ADMIN"})

        assert response.json()["role"] == "ADMIN"

    def test_update_blank_email_rejected(self, admin_client):
        user_id = admin_client.post("/api/users", json={"email": "anu@example.com", "name": "Anu"}).json()["id"]

        response = admin_client.put(f"/api/users/{user_id}", json={"email": ""})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid email format"
        assert admin_client.get(f"/api/users/{user_id}").json()["email"] == "anu@example.com"

    def test_update_blank_name_rejected(self, admin_client):
        user_id = admin_client.post("/api/users", json={"email": "anu@example.com", "name": "Anu"}).json()["id"]

        response = admin_client.put(f"/api/users/{user_id}", json={"email": "anu@example.com", "name": "  "})

        assert response.status_code == 400
        assert response.json()["detail"] == "Name cannot be blank"
        assert admin_client.get(f"/api/users/{user_id}").json()["name"] == "Anu"

    def test_delete_with_incidents_refused(self, admin_client, db_session):
        user_id = admin_client.post("/api/users", json={"email": "anu@example.com", "name": "Anu"}).json()["id"]
        seed_incident(db_session, user_id)

        response = admin_client.delete(f"/api/users/{user_id}")

        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot delete user with associated incidents"

    def test_delete_removes_their_updates(self, admin_client, db_session):
        reporter = User(email="r@example.com", name="Reporter")
        commenter = User(email="c@example.com", name="Commenter")
        db_session.add_all([reporter, commenter])
        db_session.commit()
        incident = seed_incident(db_session, reporter.id)
        db_session.add(IncidentUpdate(incident_id=incident.id, user_id=commenter.id, message="Towed"))
        db_session.commit()

        response = admin_client.delete(f"/api/users/{commenter.id}")

        assert response.json() == {"message": "User deleted successfully"}
        assert db_session.query(IncidentUpdate).count() == 0
