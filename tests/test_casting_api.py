"""API tests for the casting endpoints with completion mocked out."""

import io
import json
import uuid
from unittest.mock import MagicMock

import pytest
from PIL import Image

from castmatch.core.exceptions import CompletionTimeoutError
from castmatch.services.casting import NOT_CONFIGURED_WARNING

POOL = [
    "https://images.pexels.com/a.jpg",
    {"image": "https://images.pexels.com/b.jpg", "name": "Jordan Lee"},
    "https://example.com/anime-extra.png",
]


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 10, 10)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def completion(monkeypatch):
    fake = MagicMock()

    def resolve(api_key, app_settings=None):
        return fake, []

    monkeypatch.setattr("castmatch.api.v1.casting.resolve_completion_client", resolve)
    return fake


@pytest.mark.anyio
async def test_match_without_credentials(client):
    resp = await client.post(
        "/v1/casting/match",
        json={"attributes": {"gender": "Female", "ageRange": [30]}, "candidates": POOL},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["strategy"] == "heuristic"
    assert data["degraded"] is False
    assert data["warnings"] == [NOT_CONFIGURED_WARNING]
    assert data["saved"] is True
    assert [c["image"] for c in data["candidates"]] == [
        "https://images.pexels.com/a.jpg",
        "https://images.pexels.com/b.jpg",
        "https://example.com/anime-extra.png",
    ]
    assert [c["name"] for c in data["candidates"]] == ["Candidate 1", "Jordan Lee", "Candidate 3"]
    for candidate in data["candidates"]:
        assert 0 <= candidate["matchScore"] <= 100
        assert candidate["matchingTraits"]


@pytest.mark.anyio
@pytest.mark.parametrize("attributes", [{}, {"gender": " ", "ethnicity": ""}])
async def test_match_with_empty_attributes_is_unconstrained(client, attributes):
    pool = ["https://images.pexels.com/a.jpg", "https://images.pexels.com/b.jpg"]
    for _ in range(20):
        resp = await client.post(
            "/v1/casting/match",
            json={"attributes": attributes, "candidates": pool, "save": False},
        )
        assert resp.status_code == 200
        for candidate in resp.json()["candidates"]:
            assert candidate["matchingTraits"] == ["Generic match"]
            assert 25 <= candidate["matchScore"] <= 75


@pytest.mark.anyio
async def test_match_with_enrichment(client, completion):
    completion.generate_text.return_value = "A sharp-eyed strategist."
    resp = await client.post(
        "/v1/casting/match",
        json={"attributes": {"gender": "Male"}, "candidates": POOL[:1], "save": False},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["description"] == "A sharp-eyed strategist."
    assert data["saved"] is False
    assert data["resultId"] is None
    assert data["warnings"] == []


@pytest.mark.anyio
async def test_match_enrichment_failure_degrades(client, completion):
    completion.generate_text.side_effect = CompletionTimeoutError("deadline exceeded")
    resp = await client.post(
        "/v1/casting/match",
        json={"attributes": {"gender": "Male"}, "candidates": [f"/media/{i}.png" for i in range(5)]},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["degraded"] is True
    assert data["strategy"] == "fallback"
    assert len(data["candidates"]) == 3
    assert all(60 <= c["matchScore"] < 96 for c in data["candidates"])


@pytest.mark.anyio
async def test_match_llm_strategy(client, completion):
    completion.generate_text.side_effect = [
        "desc",
        json.dumps([{"candidateIndex": 0, "matchScore": 77, "matchingTraits": ["Similar build"]}]),
    ]
    resp = await client.post(
        "/v1/casting/match",
        json={"candidates": POOL[:1], "strategy": "llm"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["strategy"] == "llm"
    assert data["candidates"][0]["matchScore"] == 77
    assert data["candidates"][0]["matchingTraits"] == ["Similar build", "Generic match"]


@pytest.mark.anyio
async def test_match_empty_pool(client):
    resp = await client.post("/v1/casting/match", json={"candidates": []})
    assert resp.status_code == 200
    assert resp.json()["candidates"] == []


@pytest.mark.anyio
async def test_match_validation_errors(client):
    resp = await client.post("/v1/casting/match", json={"attributes": {"age": 400}, "candidates": []})
    assert resp.status_code == 422

    resp = await client.post("/v1/casting/match", json={"candidates": [], "strategy": "psychic"})
    assert resp.status_code == 422


@pytest.mark.anyio
async def test_generate_character(client, completion):
    completion.generate_text.return_value = "Auburn hair, calm gaze."
    resp = await client.post("/v1/casting/character", json={"attributes": {"gender": "female"}})
    assert resp.status_code == 200
    data = resp.json()
    assert data["description"] == "Auburn hair, calm gaze."
    assert data["image"].startswith("https://images.unsplash.com/")
    assert "Gender: female" in data["prompt"]


@pytest.mark.anyio
async def test_generate_character_without_credentials(client):
    resp = await client.post("/v1/casting/character", json={})
    assert resp.status_code == 200
    data = resp.json()
    assert data["description"] is None
    assert data["warnings"] == [NOT_CONFIGURED_WARNING]


@pytest.mark.anyio
async def test_results_roundtrip_and_report(client):
    resp = await client.post(
        "/v1/casting/match",
        json={"attributes": {"gender": "Female"}, "candidates": POOL[:2]},
    )
    result_id = resp.json()["resultId"]
    assert result_id

    listing = await client.get("/v1/casting/results")
    assert listing.status_code == 200
    assert [row["resultId"] for row in listing.json()] == [result_id]

    detail = await client.get(f"/v1/casting/results/{result_id}")
    assert detail.status_code == 200
    assert detail.json()["characterData"] == {"gender": "Female"}
    assert len(detail.json()["matchedCandidates"]) == 2

    report = await client.get(f"/v1/casting/results/{result_id}/report")
    assert report.status_code == 200
    assert report.json()["summary"]["count"] == 2

    text = await client.get(f"/v1/casting/results/{result_id}/report", params={"format": "text"})
    assert text.status_code == 200
    assert text.headers["content-type"].startswith("text/plain")
    assert "attachment" in text.headers["content-disposition"]
    assert text.text.startswith(f"CastMatch report {result_id}")


@pytest.mark.anyio
async def test_results_limit(client):
    for _ in range(3):
        await client.post("/v1/casting/match", json={"candidates": POOL[:1]})
    resp = await client.get("/v1/casting/results", params={"limit": 2})
    assert len(resp.json()) == 2

    resp = await client.get("/v1/casting/results", params={"limit": 0})
    assert resp.status_code == 422


@pytest.mark.anyio
async def test_unknown_result(client):
    resp = await client.get(f"/v1/casting/results/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Match result not found"


@pytest.mark.anyio
async def test_upload_candidates(client):
    resp = await client.post(
        "/v1/casting/candidates/upload",
        files=[
            ("files", ("one.png", _png_bytes(), "image/png")),
            ("files", ("two.png", _png_bytes(), "image/png")),
        ],
    )
    assert resp.status_code == 200
    images = resp.json()["images"]
    assert len(images) == 2
    assert all(url.startswith("/media/candidate-photo-") and url.endswith(".png") for url in images)


@pytest.mark.anyio
async def test_upload_rejects_non_images(client):
    resp = await client.post(
        "/v1/casting/candidates/upload",
        files=[("files", ("notes.txt", b"hello", "text/plain"))],
    )
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_upload_rejects_empty_file(client):
    resp = await client.post(
        "/v1/casting/candidates/upload",
        files=[("files", ("empty.png", b"", "image/png"))],
    )
    assert resp.status_code == 400
