from fastapi.testclient import TestClient


def translate_and_get_content_id(client: TestClient) -> str:
    response = client.post(
        "/translate/text",
        json={"text": "Hello there friend", "sourceLanguage": "en", "targetLanguage": "ko"},
    )
    return response.json()["contentId"]


def cache_key(content_id: str) -> dict[str, str]:
    return {"contentId": content_id, "sourceLanguage": "en", "targetLanguage": "ko"}


class TestRating:
    def test_rate_entry(self, client: TestClient) -> None:
        content_id = translate_and_get_content_id(client)

        response = client.put("/cache/rating", json={**cache_key(content_id), "rating": 4})

        assert response.status_code == 200
        assert response.json()["userRating"] == 4
        assert response.json()["translatedText"] == "Translated by fast"

    def test_rating_out_of_range_rejected(self, client: TestClient) -> None:
        content_id = translate_and_get_content_id(client)

        response = client.put("/cache/rating", json={**cache_key(content_id), "rating": 6})

        assert response.status_code == 422

    def test_missing_entry_returns_404(self, client: TestClient) -> None:
        response = client.put("/cache/rating", json={**cache_key("missing"), "rating": 3})

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "CACHE_ENTRY_NOT_FOUND"


class TestFavorite:
    def test_toggle_favorite(self, client: TestClient) -> None:
        content_id = translate_and_get_content_id(client)

        first = client.post("/cache/favorite", json=cache_key(content_id))
        second = client.post("/cache/favorite", json=cache_key(content_id))

        assert first.json()["isFavorited"] is True
        assert second.json()["isFavorited"] is False

    def test_missing_entry_returns_404(self, client: TestClient) -> None:
        response = client.post("/cache/favorite", json=cache_key("missing"))

        assert response.status_code == 404


class TestStatisticsAndClear:
    def test_statistics(self, client: TestClient) -> None:
        content_id = translate_and_get_content_id(client)
        client.put("/cache/rating", json={**cache_key(content_id), "rating": 5})

        response = client.get("/cache/statistics")

        assert response.status_code == 200
        data = response.json()
        assert data["totalEntries"] == 1
        assert data["averageRating"] == 5.0
        assert data["languageDistribution"] == {"ko": 1}

    def test_clear(self, client: TestClient) -> None:
        translate_and_get_content_id(client)

        response = client.delete("/cache")

        assert response.status_code == 200
        assert response.json() == {"removed": 1}
        assert client.get("/cache/statistics").json()["totalEntries"] == 0
