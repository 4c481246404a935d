import pytest

from telecare.core import config
from telecare.main import app, root


def test_root_reports_status() -> None:
    assert root() == {'status': 'Telecare API Running'}


def test_all_routers_are_mounted() -> None:
    paths = {route.path for route in app.routes}

    assert {
        '/auth/login',
        '/profiles/me',
        '/availability/therapists/{therapist_id}/slots',
        '/appointments/',
        '/notifications/',
        '/posts/',
        '/chat/conversations',
    } <= paths


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [(None, False), ('true', True), (' YES ', True), ('0', False), ('off', False)],
)
def test_get_bool(raw, expected) -> None:
    assert config._get_bool(raw) is expected


def test_get_list_splits_and_strips() -> None:
    assert config._get_list(' a.com , ,b.com', default=['x']) == ['a.com', 'b.com']
    assert config._get_list('', default=['x']) == ['x']


def test_production_requires_real_jwt_secret(monkeypatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'production')
    monkeypatch.setattr(config, 'JWT_SECRET_KEY', 'change-me')

    with pytest.raises(RuntimeError):
        config.validate_runtime_config()

    monkeypatch.setattr(config, 'JWT_SECRET_KEY', 'a-real-secret')
    config.validate_runtime_config()
