"""
Unit tests for the review server.
"""
import base64

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from src.api.app import create_app
from src.core.metadata import MetadataPersister


@pytest.fixture
def saved_session(stopped_session):
    """The stopped session with real image files, saved to disk."""
    stopped_session.session_dir.mkdir(parents=True, exist_ok=True)
    for i, record in enumerate(stopped_session.records):
        path = stopped_session.session_dir / f"screen_{142501 + i}.png"
        Image.new("RGB", (16, 9), (i * 20, 0, 0)).save(path)
        record.path = str(path)
    MetadataPersister().save(stopped_session)
    return stopped_session


@pytest.fixture
def client(tmp_path):
    return TestClient(create_app(tmp_path))


class TestSessionsApi:
    """Tests for browsing sessions."""

    def test_list_empty(self, client):
        assert client.get("/api/sessions").json() == []

    def test_list(self, client, saved_session, tmp_path):
        """Test that sessions are listed and unreadable directories skipped."""
        (tmp_path / "20250101_000000").mkdir()
        (tmp_path / "notes").mkdir()

        sessions = client.get("/api/sessions").json()

        assert len(sessions) == 1
        assert sessions[0]['session_id'] == "20260131_142501"
        assert sessions[0]['task_name'] == "Write quarterly report"
        assert sessions[0]['screenshot_count'] == 10
        assert sessions[0]['duration_minutes'] == 5.0

    def test_get_session(self, client, saved_session):
        data = client.get("/api/sessions/20260131_142501").json()
        assert data['screenshot_count'] == 10
        assert len(data['screenshots']) == 10

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/20990101_000000").status_code == 404

    def test_invalid_session_id(self, client):
        assert client.get("/api/sessions/latest").status_code == 404

    def test_malformed_session(self, client, tmp_path):
        session_dir = tmp_path / "20260131_142501"
        session_dir.mkdir()
        (session_dir / "metadata.json").write_text("{oops")
        assert client.get("/api/sessions/20260131_142501").status_code == 422


class TestReviewApi:
    """Tests for reviews, bundles, summaries and images."""

    def test_review(self, client, saved_session):
        response = client.get("/api/sessions/20260131_142501/review", params={"samples": 3})

        assert response.status_code == 200
        assert response.headers['content-type'].startswith("text/markdown")
        assert "**Sampled screenshots**: 3" in response.text

    def test_review_rejects_zero_samples(self, client, saved_session):
        response = client.get("/api/sessions/20260131_142501/review", params={"samples": 0})
        assert response.status_code == 422

    def test_bundle(self, client, saved_session):
        bundle = client.get("/api/sessions/20260131_142501/bundle").json()

        assert bundle['sampled_count'] == 5
        assert len(bundle['images']) == 5
        assert base64.b64decode(bundle['images'][0]['data']).startswith(b"\x89PNG")

    def test_summary_round_trip(self, client, saved_session):
        """Test that a stored summary is returned and written to summary.txt."""
        url = "/api/sessions/20260131_142501/summary"
        assert client.get(url).json() == {"summary": None}

        response = client.put(url, json={"summary": "Drafted Q1 report."})

        assert response.status_code == 200
        assert client.get(url).json() == {"summary": "Drafted Q1 report."}
        assert (saved_session.session_dir / "summary.txt").read_text() == "Drafted Q1 report."

    def test_image(self, client, saved_session):
        response = client.get("/api/sessions/20260131_142501/images/screen_142501.png")
        assert response.status_code == 200
        assert response.headers['content-type'] == "image/png"

    @pytest.mark.parametrize("name", ["missing.png", "metadata.json", ".hidden.png"])
    def test_image_not_served(self, client, saved_session, name):
        response = client.get(f"/api/sessions/20260131_142501/images/{name}")
        assert response.status_code == 404
