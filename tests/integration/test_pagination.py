import pytest

pytestmark = pytest.mark.integration


@pytest.fixture()
def listings(shelter, make_listing):
    return [make_listing(shelter.id, name=f"Animal {i:02d}") for i in range(25)]


class TestPagination:
    def test_default_page_size(self, client_for, adopter, listings):
        response = client_for(adopter).get("/api/v1/listings/")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 25
        assert len(data["results"]) == 20
        assert data["next"] is not None
        assert data["previous"] is None

    def test_custom_page_size(self, client_for, adopter, listings):
        response = client_for(adopter).get("/api/v1/listings/", {"page_size": 10, "page": 3})

        data = response.json()
        assert len(data["results"]) == 5
        assert data["next"] is None

    def test_oversized_page_size_is_clamped(self, client_for, adopter, listings):
        response = client_for(adopter).get("/api/v1/listings/", {"page_size": 1000})
        assert len(response.json()["results"]) == 25

    def test_ordering_by_name(self, client_for, adopter, listings):
        response = client_for(adopter).get(
            "/api/v1/listings/", {"ordering": "name", "page_size": 3}
        )
        names = [item["name"] for item in response.json()["results"]]
        assert names == ["Animal 00", "Animal 01", "Animal 02"]
