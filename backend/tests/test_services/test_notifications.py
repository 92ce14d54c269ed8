"""Tests for templated account emails."""

import pytest

from stayhub.services import notifications


class TestNotifications:
    def test_render_password_reset(self):
        subject, body = notifications.render(
            "password_reset",
            name="Ana",
            reset_url="http://localhost:3000/reset-password?token=t",
            expires_minutes="30",
        )
        assert subject == "Reset your StayHub password"
        assert "Hi Ana" in body
        assert "token=t" in body
        assert "30 minutes" in body

    def test_render_unknown_template(self):
        with pytest.raises(KeyError):
            notifications.render("nope")

    def test_send_email_is_simulated(self):
        result = notifications.send_email("welcome", "ana@example.com", name="Ana")
        assert result["status"] == "simulated"
        assert result["recipient"] == "ana@example.com"
        assert result["subject"] == "Welcome to StayHub!"
