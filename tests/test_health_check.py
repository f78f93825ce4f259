class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "services" in data

    def test_health_check_reports_database_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["database"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_health_check_reports_cache_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["cache"]["status"] == "up"
        assert "response_time_ms" in data["services"]["cache"]

    def test_payments_unconfigured_without_keys(self, client, settings):
        settings.STRIPE_SECRET_KEY = ""
        settings.STRIPE_WEBHOOK_SECRET = ""
        data = client.get("/health").json()
        assert data["services"]["payments"]["status"] == "unconfigured"
        assert data["status"] == "healthy"

    def test_payments_configured_with_keys(self, client, settings):
        settings.STRIPE_SECRET_KEY = "sk_test_abc"
        settings.STRIPE_WEBHOOK_SECRET = "whsec_abc"
        data = client.get("/health").json()
        assert data["services"]["payments"]["status"] == "configured"

    def test_health_check_is_public(self, api_client):
        assert api_client.get("/health").status_code == 200
