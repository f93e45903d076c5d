import pytest

from phpipam_addr.config import Config, ConfigError
from phpipam_addr.phpipam_api import PhpIPAMAPI
from phpipam_addr.provider import Provider


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def test_builds_client_from_config():
    config = Config(overrides={'server_url': 'https://ipam.local', 'token': 't',
                               'app_id': 'ops', 'strict_names': False})

    provider = Provider(config)

    assert isinstance(provider.api, PhpIPAMAPI)
    reconciler = provider.reconciler()
    assert reconciler.allocator.app_tag == 'ops'
    assert reconciler.resolver.strict is False


def test_incomplete_config_rejected():
    with pytest.raises(ConfigError):
        Provider(Config())


def test_injected_client_skips_validation(fake):
    provider = Provider(Config(), api=fake)
    assert provider.reconciler().api is fake
