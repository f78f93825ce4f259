import pytest

pytestmark = pytest.mark.integration

URL = "/api/v1/account/me/"


class TestAccountMe:
    def test_requires_authentication(self, api_client):
        assert api_client.get(URL).status_code == 401

    def test_returns_own_account(self, auth_client, account):
        response = auth_client.get(URL)

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == str(account.id)
        assert body["postcode"] == "LA9 4DT"
        assert body["email"] == "jo@example.com"

    def test_profile_created_on_first_read(self, auth_client, user):
        response = auth_client.get(URL)

        assert response.status_code == 200
        assert response.json()["postcode"] == ""
        assert user.account is not None

    def test_partial_update_keeps_other_fields(self, auth_client, account):
        response = auth_client.patch(
            URL, {"address_line1": "  2   High  Street ", "city": ""}, format="json"
        )

        assert response.status_code == 200
        body = response.json()
        assert body["address_line1"] == "2 High Street"
        assert body["city"] == "Kendal"
        account.refresh_from_db()
        assert account.address_line1 == "2 High Street"

    def test_put_behaves_like_patch(self, auth_client, account):
        response = auth_client.put(URL, {"country": "UK"}, format="json")
        assert response.status_code == 200
        assert response.json()["country"] == "UK"
        assert response.json()["name"] == "Jo Bloggs"

    def test_no_usable_fields(self, auth_client, account):
        response = auth_client.patch(URL, {"city": "  ", "unknown": "x"}, format="json")

        assert response.status_code == 400
        assert response.json() == {"detail": "No valid fields", "code": "invalid_payload"}
