"""Integration tests for the statistics endpoints."""

from typing import Any

from fastapi.testclient import TestClient


def test_total_time_sums_all_plays(
    client: TestClient, auth_headers: dict[str, str], upload: Any
) -> None:
    upload(auth_headers)

    response = client.get("/total-time", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"total_time_ms": 360000}


def test_total_time_for_new_user(client: TestClient, auth_headers: dict[str, str]) -> None:
    assert client.get("/total-time", headers=auth_headers).json() == {"total_time_ms": 0}


def test_daily_time_accepts_unpadded_parts(
    client: TestClient, auth_headers: dict[str, str], upload: Any
) -> None:
    upload(auth_headers)

    response = client.get(
        "/daily-time", params={"year": "2023", "month": "1", "day": "5"}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json() == {"date": "2023-01-05", "total_time_ms": 300000}


def test_daily_time_missing_parameter(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    response = client.get(
        "/daily-time", params={"year": "2023", "month": "1"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Missing date parameters"}


def test_daily_time_invalid_date(client: TestClient, auth_headers: dict[str, str]) -> None:
    response = client.get(
        "/daily-time", params={"year": "2023", "month": "2", "day": "30"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid date parameters"}


def test_stats_empty_user(client: TestClient, auth_headers: dict[str, str]) -> None:
    response = client.get("/stats", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {
        "topArtists": [],
        "topTracks": [],
        "topAlbums": [],
        "listeningPatterns": [],
        "platformStats": [],
        "countryStats": [],
    }


def test_stats_ranks_by_play_count(
    client: TestClient, auth_headers: dict[str, str], upload: Any
) -> None:
    upload(auth_headers)

    body = client.get("/stats", headers=auth_headers).json()

    top_artist = body["topArtists"][0]
    assert top_artist["artist_name"] == "Artist One"
    assert top_artist["play_count"] == 2
    assert top_artist["total_time"] == 240000
    assert body["topTracks"][0]["track_name"] == "Song A"
    assert len(body["topArtists"]) == 2
    assert body["listeningPatterns"]


def test_range_stats_filters_by_date(
    client: TestClient, auth_headers: dict[str, str], upload: Any
) -> None:
    upload(auth_headers)

    response = client.get(
        "/stats/range",
        params={"start_date": "2023-02-01", "end_date": "2023-02-28"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["start_date"] == "2023-02-01"
    assert body["end_date"] == "2023-02-28"
    assert [a["artist_name"] for a in body["top_artists"]] == ["Artist One"]
    assert body["top_artists"][0]["play_count"] == 1


def test_range_stats_end_date_is_inclusive(
    client: TestClient, auth_headers: dict[str, str], upload: Any
) -> None:
    upload(auth_headers)

    body = client.get(
        "/stats/range",
        params={"start_date": "2023-01-05", "end_date": "2023-01-05"},
        headers=auth_headers,
    ).json()

    assert {a["artist_name"] for a in body["top_artists"]} == {"Artist One", "Artist Two"}


def test_range_stats_missing_dates(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    response = client.get(
        "/stats/range", params={"start_date": "2023-01-01"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Missing date parameters"}


def test_range_stats_start_after_end(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    response = client.get(
        "/stats/range",
        params={"start_date": "2023-03-01", "end_date": "2023-01-01"},
        headers=auth_headers,
    )

    assert response.status_code == 400
