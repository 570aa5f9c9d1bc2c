from __future__ import annotations

import pytest

from geoscope.security.config import load_security_config, parse_security_config
from geoscope.settings import get_settings


@pytest.fixture
def config():
    return parse_security_config(
        {
            "security": {
                "default": {"auth_required": True},
                "routes": [
                    {"path": "/health", "auth_required": False},
                    {"path": "/venues", "filter_by_geography": True},
                    {"path": "/venues/{id}", "filter_by_geography": False},
                    {"path": "/admin/users", "required_roles": ["ADMINISTRATOR"]},
                ],
            }
        }
    )


def test_exact_match_wins(config):
    rule = config.match("/venues", "GET")
    assert rule.filter_by_geography is True
    assert rule.auth_required is True


def test_template_match(config):
    rule = config.match("/venues/abc-123", "get")
    assert rule.filter_by_geography is False


def test_unmatched_route_uses_defaults(config):
    rule = config.match("/activities", "GET")
    assert rule.auth_required is True
    assert rule.filter_by_geography is False
    assert rule.required_roles == frozenset()


def test_method_must_match(config):
    assert config.match("/health", "GET").auth_required is False
    assert config.match("/health", "POST").auth_required is True


def test_required_roles(config):
    assert config.match("/admin/users", "GET").required_roles == {"ADMINISTRATOR"}


def test_missing_top_level_key_is_rejected():
    with pytest.raises(ValueError):
        parse_security_config({"routes": []})


def test_shipped_config_loads():
    config = load_security_config(get_settings().resolved_security_config_path())
    assert config.match("/geographic-areas", "GET").filter_by_geography is True
    assert config.match("/geographic-areas/x", "GET").filter_by_geography is False
    assert config.match("/admin/users", "GET").required_roles == {"ADMINISTRATOR"}
    # This route declares its roles with @require_roles instead.
    assert config.match("/admin/users/u1/authorized-areas", "GET").required_roles == frozenset()
