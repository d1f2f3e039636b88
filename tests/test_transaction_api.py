import pytest
from fastapi.testclient import TestClient
from src.main import app
from tests.test_upload_api import post_csv


@pytest.fixture
def client(aws):
    return TestClient(app)


@pytest.fixture
def upload_id(client, auth_headers):
    return post_csv(client, auth_headers).json()["upload_id"]


class TestTransactionAPI:
    def test_list_upload_transactions_in_row_order(self, client, auth_headers, upload_id):
        response = client.get(f"/v1/api/uploads/{upload_id}/transactions", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 3
        transactions = data["transactions"]
        assert [t["row_number"] for t in transactions] == [1, 2, 3]
        assert [t["title"] for t in transactions] == ["Midnight", "Noon", "Dusk"]
        assert transactions[0]["transaction_id"] == f"TRANS-{upload_id}-1"
        assert transactions[0]["service_type"] == "Spotify"
        assert transactions[0]["territory"] == "US"
        assert transactions[0]["quantity"] == 1500
        assert transactions[0]["transaction_type"] == "stream"
        assert transactions[0]["currency"] == "USD"
        assert transactions[0]["raw_data"]["Track Name"] == "Midnight"
        assert transactions[0]["transaction_date"].startswith("2024-03-01")

    def test_non_numeric_quantity_defaults_to_zero(self, client, auth_headers, upload_id):
        transactions = client.get(
            f"/v1/api/uploads/{upload_id}/transactions", headers=auth_headers
        ).json()["transactions"]

        assert transactions[1]["quantity"] == 0

    def test_list_upload_transactions_pagination(self, client, auth_headers, upload_id):
        first_page = client.get(
            f"/v1/api/uploads/{upload_id}/transactions", params={"limit": 2}, headers=auth_headers
        ).json()
        second_page = client.get(
            f"/v1/api/uploads/{upload_id}/transactions",
            params={"limit": 2, "next_token": first_page["next_token"]},
            headers=auth_headers
        ).json()

        assert [t["row_number"] for t in first_page["transactions"]] == [1, 2]
        assert [t["row_number"] for t in second_page["transactions"]] == [3]

    def test_list_upload_transactions_unknown_upload(self, client, auth_headers):
        response = client.get("/v1/api/uploads/missing/transactions", headers=auth_headers)

        assert response.status_code == 404

    def test_filter_by_artist(self, client, auth_headers, upload_id):
        response = client.get("/v1/api/transactions", params={"artist": "owls"}, headers=auth_headers)

        assert response.status_code == 200
        assert sorted(t["title"] for t in response.json()["transactions"]) == ["Midnight", "Noon"]

    def test_filter_by_service_and_territory(self, client, auth_headers, upload_id):
        response = client.get(
            "/v1/api/transactions",
            params={"service_type": "Spotify", "territory": "US"},
            headers=auth_headers
        )

        assert sorted(t["title"] for t in response.json()["transactions"]) == ["Dusk", "Midnight"]

    def test_filter_by_date_range(self, client, auth_headers, upload_id):
        response = client.get(
            "/v1/api/transactions",
            params={"start_date": "2024-04-01T00:00:00Z", "end_date": "2024-04-30T23:59:59Z"},
            headers=auth_headers
        )

        assert [t["title"] for t in response.json()["transactions"]] == ["Dusk"]

    def test_date_only_end_date_includes_the_whole_day(self, client, auth_headers):
        content = (
            "Track Name,Artist Name,Transaction Date\n"
            "Late Set,The Owls,2024-04-30T21:15:00Z\n"
            "Next Day,The Owls,2024-05-01T00:00:01Z\n"
        )
        post_csv(client, auth_headers, content=content)

        response = client.get(
            "/v1/api/transactions",
            params={"start_date": "2024-04-30", "end_date": "2024-04-30"},
            headers=auth_headers
        )

        assert response.status_code == 200
        assert [t["title"] for t in response.json()["transactions"]] == ["Late Set"]

    def test_invalid_end_date_is_rejected(self, client, auth_headers):
        response = client.get("/v1/api/transactions", params={"end_date": "someday"}, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == ["query", "end_date"]

    def test_inverted_date_range_is_rejected(self, client, auth_headers):
        response = client.get(
            "/v1/api/transactions",
            params={"start_date": "2024-05-01T00:00:00Z", "end_date": "2024-04-01T00:00:00Z"},
            headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "start_date must not be after end_date"

    def test_get_and_delete_transaction(self, client, auth_headers, upload_id):
        transaction = client.get(
            f"/v1/api/uploads/{upload_id}/transactions", headers=auth_headers
        ).json()["transactions"][0]

        response = client.get(f"/v1/api/transactions/{transaction['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["title"] == "Midnight"

        response = client.delete(f"/v1/api/transactions/{transaction['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Transaction deleted successfully", "id": transaction["id"]}

        response = client.get(f"/v1/api/transactions/{transaction['id']}", headers=auth_headers)
        assert response.status_code == 404

    def test_requires_authentication(self, client):
        response = client.get("/v1/api/transactions")

        assert response.status_code == 401

    def test_limit_is_bounded(self, client, auth_headers):
        response = client.get("/v1/api/transactions", params={"limit": 500}, headers=auth_headers)

        assert response.status_code == 422
