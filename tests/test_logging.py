from django.conf import settings


class TestLoggingConfiguration:
    def test_console_handler_renders_json(self):
        handler = settings.LOGGING["handlers"]["console"]
        assert handler["formatter"] == "json"

    def test_masking_runs_before_rendering(self):
        from config.settings import _shared_processors, mask_sensitive_data

        assert mask_sensitive_data in _shared_processors

    def test_django_logger_uses_console(self):
        assert settings.LOGGING["loggers"]["django"]["handlers"] == ["console"]


class TestSensitiveDataMasking:
    def test_email_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "detail": "customer jo@example.com registered"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "jo@example.com" not in result["detail"]
        assert "***MASKED***" in result["detail"]

    def test_non_string_values_untouched(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "order.placed", "total_amount": 1299}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["total_amount"] == 1299
