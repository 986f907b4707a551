"""
Tests for blueprint registration and the diagnostics report.
"""

import function_app


class TestRegistration:
    def test_every_blueprint_registers(self):
        assert function_app.FAILURES == {}
        assert set(function_app.REGISTERED) == set(function_app.BLUEPRINTS)


class TestDiagnostics:
    def test_reports_which_settings_are_present(self):
        report = function_app.diagnostics({
            "SUPABASE_URL": "https://backend.test",
            "SUPABASE_SERVICE_ROLE_KEY": "service-key",
            "CODE_SALT": "salt",
        })

        assert report["settings"]["SUPABASE_URL"] is True
        assert report["settings"]["CODE_SALT"] is True
        assert report["settings"]["RESEND_API_KEY"] is False
        assert report["registered"] == function_app.REGISTERED

    def test_never_includes_setting_values(self):
        report = function_app.diagnostics({"SUPABASE_SERVICE_ROLE_KEY": "very-secret-key"})
        assert "very-secret-key" not in str(report)

    def test_invalid_configuration_is_reported(self):
        report = function_app.diagnostics({"HTTP_TIMEOUT_SECONDS": "soon"})
        assert report["config_error"] == "HTTP_TIMEOUT_SECONDS must be a number"
        assert "settings" not in report
