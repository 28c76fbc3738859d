"""Tests for Settings validation."""

import pytest
from pydantic import ValidationError

from pohi_platform.app.config import Settings


class TestSettings:

    def test_defaults(self):
        settings = Settings(gemini_api_key="")
        assert settings.truck_capacity_m3 == 25.0
        assert settings.ai_enabled is False

    @pytest.mark.parametrize("capacity", [0, -5])
    def test_truck_capacity_must_be_positive(self, capacity):
        with pytest.raises(ValidationError):
            Settings(truck_capacity_m3=capacity)

    def test_debug_allows_any_origin(self):
        assert Settings(debug=True).cors_origins_list == ["*"]
        origins = Settings(debug=False, cors_origins="http://a.test, http://b.test").cors_origins_list
        assert origins == ["http://a.test", "http://b.test"]
