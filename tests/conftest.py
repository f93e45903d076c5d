import pytest

from phpipam_addr.reconciler import Reconciler
from tests.fakes import FakePhpIPAM


@pytest.fixture
def fake():
    api = FakePhpIPAM()
    api.add_section('1', 'prod')
    api.add_section('2', 'lab')
    api.add_subnet('10', '1', '10.0.0.0/24', gateway='10.0.0.1')
    api.add_subnet('11', '1', '10.0.1.0/24', gateway='10.0.1.1')
    api.add_subnet('20', '2', '192.168.0.0/24', description='lab-net')
    return api


@pytest.fixture
def reconciler(fake):
    return Reconciler(fake, app_tag='phpipam_addr')


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('PHPIPAM_SERVER_URL', 'PHPIPAM_APP_ID', 'PHPIPAM_USERNAME', 'PHPIPAM_PASSWORD',
                 'PHPIPAM_TOKEN', 'PHPIPAM_SSL_SKIP_VERIFY', 'PHPIPAM_TIMEOUT',
                 'PHPIPAM_STRICT_NAMES', 'PHPIPAM_ADDR_STATE'):
        monkeypatch.delenv(name, raising=False)
