"""Tests for business personalization settings."""
from __future__ import annotations


def test_settings_defaults(client, auth_headers) -> None:
    response = client.get("/settings", headers=auth_headers)

    assert response.status_code == 200
    settings = response.get_json()["settings"]
    assert settings["business_name"] == "Stratum Hub"
    assert settings["business_hours"] == "9:00 AM - 6:00 PM"
    assert settings["primary_color"] == "168 60% 45%"
    assert settings["primary_color_hex"] == "#2eb89c"
    assert settings["language"] == "en"


def test_update_settings_upserts(client, auth_headers) -> None:
    first = client.put(
        "/settings",
        json={"business_name": "Happy Paws", "primary_color": "#ff0000"},
        headers=auth_headers,
    )
    assert first.status_code == 200
    assert first.get_json()["message"] == "Settings saved successfully!"

    second = client.put("/settings", json={"primary_color": "hsl(200, 55%, 55%)", "language": "ES"}, headers=auth_headers)
    assert second.get_json()["message"] == "¡Configuración guardada exitosamente!"

    settings = client.get("/settings", headers=auth_headers).get_json()["settings"]
    assert settings["business_name"] == "Happy Paws"
    assert settings["primary_color"] == "200 55% 55%"
    assert settings["language"] == "es"


def test_update_settings_validation(client, auth_headers) -> None:
    assert client.put("/settings", json={"favorite_color": "blue"}, headers=auth_headers).status_code == 400
    assert client.put("/settings", json={"language": "fr"}, headers=auth_headers).status_code == 400
    assert client.put("/settings", json={"secondary_color": "#12"}, headers=auth_headers).status_code == 400
    assert client.put("/settings", json={"business_name": "  "}, headers=auth_headers).status_code == 400
    assert client.put("/settings", json={}, headers=auth_headers).status_code == 400


def test_settings_are_per_business(client, auth_headers, other_business) -> None:
    client.put("/settings", json={"business_hours": "8:00 AM - 4:00 PM"}, headers=auth_headers)

    other = client.get("/settings", headers=other_business["headers"]).get_json()["settings"]

    assert other["business_hours"] == "9:00 AM - 6:00 PM"
