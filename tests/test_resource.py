import pytest

from phpipam_addr.errors import PartialUpdateError
from phpipam_addr.resource import (ADDRESS_SCHEMA, ResourceData, create_resource,
                                   delete_resource, new_address_data, read_resource,
                                   update_resource)


def _data(**desired):
    fields = {'hostname': 'web01', 'section': 'prod', 'subnet': '10.0.0.0/24'}
    fields.update(desired)
    return new_address_data(fields)


class TestResourceData:

    def test_rejects_unknown_field(self):
        with pytest.raises(ValueError, match='Unknown fields'):
            ResourceData(ADDRESS_SCHEMA, {'hostname': 'a', 'vlan': '10'})

    def test_rejects_computed_field(self):
        with pytest.raises(ValueError, match='computed'):
            ResourceData(ADDRESS_SCHEMA, {'ip_address': '10.0.0.1'})

    def test_validate_required(self):
        with pytest.raises(ValueError, match='subnet'):
            ResourceData(ADDRESS_SCHEMA, {'hostname': 'a', 'section': 'prod'}).validate()

    def test_has_change(self):
        d = ResourceData(ADDRESS_SCHEMA, {'hostname': 'b', 'section': 'prod', 'subnet': 's'},
                         {'hostname': 'a', 'section': 'prod', 'subnet': 's', 'index': '',
                          'ip_address': '10.0.0.2'}, '101')
        assert d.has_change('hostname')
        assert not d.has_change('section')
        assert not d.has_change('index')
        assert not d.has_change('ip_address')
        assert d.changed_fields() == ['hostname']

    def test_get_prefers_desired(self):
        d = ResourceData(ADDRESS_SCHEMA, {'hostname': 'b'}, {'hostname': 'a', 'gateway': '10.0.0.1'})
        assert d.get('hostname') == 'b'
        assert d.recorded('hostname') == 'a'
        assert d.get('gateway') == '10.0.0.1'
        assert d.get('index') == ''


class TestLifecycle:

    def test_create_populates_computed_fields(self, reconciler):
        d = create_resource(_data(index='1'), reconciler)

        assert d.id
        assert d.recorded('ip_address') == '10.0.0.2'
        assert d.recorded('gateway') == '10.0.0.1'
        assert d.recorded('broadcast') == '10.0.0.255'
        assert d.recorded('bitmask') == '24'
        assert d.recorded('index') == '1'
        assert d.changed_fields() == []

    def test_failed_create_assigns_no_id(self, reconciler):
        d = _data(section='staging')
        with pytest.raises(Exception):
            create_resource(d, reconciler)
        assert d.id == ''

    def test_read_clears_id_when_gone(self, fake, reconciler):
        d = create_resource(_data(), reconciler)
        del fake.addresses[d.id]

        read_resource(d, reconciler)
        assert d.id == ''

    def test_update_hostname(self, reconciler):
        d = create_resource(_data(), reconciler)
        state = d.to_state()

        d = new_address_data({'hostname': 'web02', 'section': 'prod', 'subnet': '10.0.0.0/24'}, state)
        assert d.changed_fields() == ['hostname']
        update_resource(d, reconciler)

        assert d.id == state['id']
        assert d.recorded('hostname') == 'web02'
        assert d.recorded('ip_address') == state['attributes']['ip_address']

    def test_update_subnet_adopts_new_id(self, fake, reconciler):
        state = create_resource(_data(), reconciler).to_state()

        d = new_address_data({'hostname': 'web01', 'section': 'prod', 'subnet': '10.0.1.0/24'}, state)
        update_resource(d, reconciler)

        assert d.id != state['id']
        assert d.recorded('subnet') == '10.0.1.0/24'
        assert d.recorded('gateway') == '10.0.1.1'
        assert state['id'] not in fake.addresses

    def test_partial_update_keeps_new_id(self, fake, reconciler):
        state = create_resource(_data(), reconciler).to_state()
        fake.fail_delete = True

        d = new_address_data({'hostname': 'web01', 'section': 'prod', 'subnet': '10.0.1.0/24'}, state)
        with pytest.raises(PartialUpdateError) as exc:
            update_resource(d, reconciler)
        assert d.id == exc.value.new_id

    def test_delete(self, fake, reconciler):
        d = create_resource(_data(), reconciler)
        address_id = d.id

        delete_resource(d, reconciler)
        assert d.id == ''
        assert address_id not in fake.addresses

    def test_partial_update_without_new_id_keeps_old_id(self, fake, reconciler):
        d = create_resource(_data(), reconciler)
        address_id = d.id
        fake.add_address('20', '10.0.1.2', 'stale')

        d = new_address_data({'hostname': 'web01', 'section': 'prod', 'subnet': '10.0.1.0/24'},
                             d.to_state())
        with pytest.raises(PartialUpdateError):
            update_resource(d, reconciler)
        assert d.id == address_id
