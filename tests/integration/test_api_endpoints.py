def identity(client, headers) -> str:
    r = client.post("/auth/validate", headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["user_id"]


def make_admin(client, headers) -> str:
    user_id = identity(client, headers)
    r = client.put(f"/roles/{user_id}", headers=headers, json={"role": "admin"})
    assert r.status_code == 200, r.text
    return user_id


def assign(client, headers, tag_id="T1", holder_name="Alice", **fields):
    body = {"tag_id": tag_id, "holder_name": holder_name, **fields}
    return client.post("/cards", headers=headers, json=body)


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "ok"
    assert client.get("/health").json() == {"status": "healthy"}


def test_auth_validate(client, admin_header):
    r = client.post("/auth/validate", headers=admin_header)
    assert r.status_code == 200
    data = r.json()
    assert data["user_id"].startswith("fake-")
    assert data["email"] == "admin@example.com"


def test_auth_requires_token(client):
    assert client.post("/auth/validate").status_code == 401
    assert client.get("/cards").status_code == 401


def test_current_role_defaults(client, user_header):
    r = client.get("/roles/me")
    assert r.json() == {"authenticated": False, "role": None}

    r = client.get("/roles/me", headers=user_header)
    assert r.json() == {"authenticated": True, "role": "user"}


def test_bootstrap_then_gate(client, admin_header, user_header):
    make_admin(client, admin_header)
    assert client.get("/roles/me", headers=admin_header).json()["role"] == "admin"

    user_id = identity(client, user_header)
    r = client.put(f"/roles/{user_id}", headers=user_header, json={"role": "admin"})
    assert r.status_code == 403
    assert r.json()["detail"] == "Only admins can set user roles"

    r = client.put(f"/roles/{user_id}", headers=admin_header, json={"role": "admin"})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "user_id": user_id, "role": "admin"}


def test_set_role_rejects_unknown_role(client, admin_header):
    user_id = identity(client, admin_header)
    r = client.put(f"/roles/{user_id}", headers=admin_header, json={"role": "owner"})
    assert r.status_code == 422


def test_me_includes_role(client, admin_header):
    make_admin(client, admin_header)
    data = client.get("/auth/me", headers=admin_header).json()
    assert data["role"] == "admin"
    assert data["email"] == "admin@example.com"


def test_assign_requires_admin(client, admin_header, user_header):
    make_admin(client, admin_header)
    r = assign(client, user_header)
    assert r.status_code == 403
    assert client.get("/cards/lookup/T1").status_code == 404


def test_rejected_assign_stores_no_profile(client, admin_header, user_header):
    from src.infrastructure.database.repositories.profile_repository import _MEM_PROFILES

    make_admin(client, admin_header)
    assert assign(client, user_header).status_code == 403
    assert all(p.email != "visitor@example.com" for p in _MEM_PROFILES.values())

    assert assign(client, admin_header).status_code == 201
    assert any(p.email == "admin@example.com" for p in _MEM_PROFILES.values())


def test_assign_validation(client, admin_header):
    make_admin(client, admin_header)
    assert assign(client, admin_header, holder_name="").status_code == 422
    assert assign(client, admin_header, tag_id="   ").status_code == 422
    r = client.post("/cards", headers=admin_header, json={"tag_id": "T1"})
    assert r.status_code == 422


def test_card_lifecycle_end_to_end(client, admin_header):
    make_admin(client, admin_header)

    r = assign(client, admin_header, "T1", "Alice", department="Ops", employee_id="E-1")
    assert r.status_code == 201, r.text
    card_id = r.json()["id"]

    r = client.get("/cards/lookup/T1")
    assert r.status_code == 200
    profile = r.json()
    assert profile["holder_name"] == "Alice"
    assert profile["department"] == "Ops"
    assert profile["employee_id"] == "E-1"
    assert "assigned_by" not in profile
    assert "tag_id" not in profile

    r = client.post(f"/cards/{card_id}/deactivate", headers=admin_header)
    assert r.status_code == 200
    assert r.json() == {"ok": True, "message": "Card deactivated"}

    r = client.get("/cards/lookup/T1")
    assert r.status_code == 404

    r = assign(client, admin_header, "T1", "Bob")
    assert r.status_code == 409
    assert "already been assigned" in r.json()["detail"]


def test_deactivated_and_unknown_lookups_are_identical(client, admin_header):
    make_admin(client, admin_header)
    card_id = assign(client, admin_header, "T1").json()["id"]
    client.post(f"/cards/{card_id}/deactivate", headers=admin_header)

    deactivated = client.get("/cards/lookup/T1")
    unknown = client.get("/cards/lookup/T2")
    assert deactivated.status_code == unknown.status_code == 404
    assert deactivated.json() == unknown.json()


def test_deactivate_twice_and_unknown(client, admin_header, user_header):
    make_admin(client, admin_header)
    card_id = assign(client, admin_header).json()["id"]

    assert client.post(f"/cards/{card_id}/deactivate", headers=user_header).status_code == 403
    assert client.post(f"/cards/{card_id}/deactivate", headers=admin_header).status_code == 200
    assert client.post(f"/cards/{card_id}/deactivate", headers=admin_header).status_code == 200
    assert client.post("/cards/card_404/deactivate", headers=admin_header).status_code == 404


def test_list_cards(client, admin_header, user_header):
    admin_id = make_admin(client, admin_header)
    assign(client, admin_header, "T1", "Alice")
    second = assign(client, admin_header, "T2", "Bob").json()["id"]
    assign(client, admin_header, "T3", "Carol")
    client.post(f"/cards/{second}/deactivate", headers=admin_header)

    assert client.get("/cards", headers=user_header).status_code == 403

    r = client.get("/cards", headers=admin_header)
    assert r.status_code == 200
    cards = r.json()["cards"]
    assert {c["tag_id"] for c in cards} == {"T1", "T3"}
    assert all(c["is_active"] for c in cards)
    assert all(c["assigned_by"] == admin_id for c in cards)
    assert all(c["assigned_by_email"] == "admin@example.com" for c in cards)


def test_lookup_by_deep_link_and_scan(client, admin_header):
    make_admin(client, admin_header)
    assign(client, admin_header, "04:a2:3b", "Alice")

    r = client.get("/cards/lookup", params={"nfc": "04:a2:3b"})
    assert r.status_code == 200
    assert r.json()["holder_name"] == "Alice"

    r = client.post("/cards/scan", json={"outcome": "ok", "serial_number": "04:a2:3b"})
    assert r.status_code == 200

    r = client.post("/cards/scan", json={"outcome": "unsupported"})
    assert r.status_code == 422
    assert r.json()["detail"] == "NFC not supported on this device"

    r = client.post("/cards/scan", json={"outcome": "ok"})
    assert r.status_code == 422


def test_ndef_payload(client):
    r = client.get("/cards/ndef/T1")
    assert r.status_code == 200
    assert r.json() == {
        "tag_id": "T1",
        "records": [
            {"record_type": "text", "data": "T1"},
            {"record_type": "url", "data": "https://cards.example.com?nfc=T1"},
        ],
    }
