import pytest

from phpipam_addr.address_info import AddressInfoFetcher
from phpipam_addr.errors import SectionNotFoundError, SubnetNotFoundError


def test_fetch_full_view(fake):
    address = fake.add_address('10', '10.0.0.5', 'web01', '2')
    info = AddressInfoFetcher(fake).fetch(address.id)

    assert info.to_dict() == {
        'hostname': 'web01',
        'ip': '10.0.0.5',
        'section': 'prod',
        'subnet': '10.0.0.0/24',
        'broadcast': '10.0.0.255',
        'gateway': '10.0.0.1',
        'bitmask': '24',
        'index': '2',
    }


def test_missing_address_is_absent(fake):
    assert AddressInfoFetcher(fake).fetch('999') is None


def test_non_numeric_description_is_not_an_index(fake):
    address = fake.add_address('10', '10.0.0.5', 'web01', 'eth0')
    assert AddressInfoFetcher(fake).fetch(address.id).index == ''


def test_index_taken_from_the_same_address(fake):
    fake.add_address('11', '10.0.1.5', 'web01', '1')
    address = fake.add_address('10', '10.0.0.5', 'web01', '2')
    assert AddressInfoFetcher(fake).fetch(address.id).index == '2'


def test_dangling_subnet(fake):
    address = fake.add_address('99', '10.9.9.9', 'orphan')
    with pytest.raises(SubnetNotFoundError) as exc:
        AddressInfoFetcher(fake).fetch(address.id)
    assert exc.value.subnet_id == '99'


def test_dangling_section(fake):
    fake.add_subnet('30', '42', '172.16.0.0/24')
    address = fake.add_address('30', '172.16.0.10', 'orphan')
    with pytest.raises(SectionNotFoundError) as exc:
        AddressInfoFetcher(fake).fetch(address.id)
    assert exc.value.section_id == '42'


@pytest.mark.parametrize('description,index', [
    ('7', '7'),
    ('-3', '-3'),
    ('+4', '+4'),
    (' 7', ''),
    ('1_0', ''),
    ('7 ', ''),
    ('٣', ''),
])
def test_index_must_be_a_plain_integer(fake, description, index):
    address = fake.add_address('10', '10.0.0.5', 'web01', description)
    assert AddressInfoFetcher(fake).fetch(address.id).index == index
