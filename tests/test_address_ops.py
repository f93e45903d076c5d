import pytest
import yaml

from phpipam_addr.address_ops import AddressOperations, load_manifest
from phpipam_addr.state import StateStore


@pytest.fixture
def store(tmp_path):
    return StateStore(str(tmp_path / 'state.yaml'))


@pytest.fixture
def ops(reconciler, store):
    return AddressOperations(reconciler, store)


MANIFEST = {
    'web01': {'hostname': 'web01', 'section': 'prod', 'subnet': '10.0.0.0/24'},
    'db01': {'hostname': 'db01', 'section': 'prod', 'subnet': '10.0.1.0/24', 'index': '1'},
}


def _actions(changes):
    return {c.name: c.action for c in changes}


def test_load_manifest(tmp_path):
    path = tmp_path / 'manifest.yaml'
    path.write_text(yaml.safe_dump({'addresses': {
        'web01': {'hostname': 'web01', 'section': 'prod', 'subnet': '10.0.0.0/24', 'index': 2}
    }}))

    manifest = load_manifest(str(path))
    assert manifest['web01']['index'] == '2'


def test_load_manifest_rejects_missing_fields(tmp_path):
    path = tmp_path / 'manifest.yaml'
    path.write_text(yaml.safe_dump({'addresses': {'web01': {'hostname': 'web01'}}}))

    with pytest.raises(ValueError, match='Missing required fields'):
        load_manifest(str(path))


def test_plan_fresh(ops):
    assert _actions(ops.plan(MANIFEST)) == {'web01': 'create', 'db01': 'create'}


def test_apply_then_plan_is_clean(fake, ops, store):
    results = ops.apply(MANIFEST)

    assert all(success for _, success, _ in results)
    assert set(store.names()) == {'web01', 'db01'}
    assert store.get('db01')['attributes']['ip_address'] == '10.0.1.2'
    assert _actions(ops.plan(MANIFEST)) == {'web01': 'no-op', 'db01': 'no-op'}


def test_state_survives_reload(ops, store):
    ops.apply(MANIFEST)
    reloaded = StateStore(str(store.path))
    assert reloaded.to_dict() == store.to_dict()


def test_plan_update_replace_delete(ops):
    ops.apply(MANIFEST)

    changed = {
        'web01': {'hostname': 'web01-new', 'section': 'prod', 'subnet': '10.0.0.0/24'},
    }
    changed_subnet = dict(changed, db01={'hostname': 'db01', 'section': 'prod',
                                         'subnet': '10.0.0.0/24', 'index': '1'})

    assert _actions(ops.plan(changed)) == {'web01': 'update', 'db01': 'delete'}
    assert _actions(ops.plan(changed_subnet)) == {'web01': 'update', 'db01': 'replace'}


def test_apply_removes_unlisted(fake, ops, store):
    ops.apply(MANIFEST)
    db_id = store.get('db01')['id']

    ops.apply({'web01': MANIFEST['web01']})

    assert store.names() == ['web01']
    assert db_id not in fake.addresses


def test_externally_deleted_address_is_recreated(fake, ops, store):
    ops.apply(MANIFEST)
    del fake.addresses[store.get('web01')['id']]

    assert _actions(ops.plan(MANIFEST))['web01'] == 'create'
    ops.apply(MANIFEST)
    assert store.get('web01')['id'] in fake.addresses


def test_dry_run_changes_nothing(fake, ops, store):
    results = ops.apply(MANIFEST, dry_run=True)

    assert [r[2] for r in results] == ['[DRY-RUN] Would create web01', '[DRY-RUN] Would create db01']
    assert not fake.addresses
    assert store.names() == []


def test_failure_is_reported_per_resource(fake, ops, store):
    manifest = dict(MANIFEST, bad={'hostname': 'x', 'section': 'nope', 'subnet': '10.0.0.0/24'})

    results = {name: success for name, success, _ in ops.apply(manifest)}

    assert results == {'web01': True, 'db01': True, 'bad': False}
    assert 'bad' not in store.names()


def test_unreadable_resource_does_not_block_others(fake, ops, store):
    ops.apply(MANIFEST)
    recorded = store.get('db01')
    del fake.subnets['11']
    manifest = dict(MANIFEST, web02={'hostname': 'web02', 'section': 'prod', 'subnet': '10.0.0.0/24'})

    changes = {c.name: c for c in ops.plan(manifest)}
    assert changes['db01'].action == 'error'
    assert 'subnet not found' in changes['db01'].error
    assert changes['web01'].action == 'no-op'
    assert changes['web02'].action == 'create'

    results = {name: success for name, success, _ in ops.apply(manifest)}
    assert results == {'db01': False, 'web02': True}
    assert store.get('db01') == recorded


def test_parallel_apply(fake, ops, store):
    manifest = {f'host{n}': {'hostname': f'host{n}', 'section': 'prod', 'subnet': '10.0.0.0/24'}
                for n in range(8)}

    results = ops.apply(manifest, parallelism=4)

    assert all(success for _, success, _ in results)
    ips = [store.get(name)['attributes']['ip_address'] for name in manifest]
    assert len(set(ips)) == 8


def test_refresh_drops_gone(fake, ops, store):
    ops.apply(MANIFEST)
    del fake.addresses[store.get('db01')['id']]

    rows = {row['name']: row['status'] for row in ops.refresh()}

    assert rows == {'db01': 'gone', 'web01': 'ok'}
    assert store.names() == ['web01']


def test_destroy(fake, ops, store):
    ops.apply(MANIFEST)

    results = ops.destroy(['web01', 'missing'])

    assert results[0][1] is True
    assert results[1] == ('missing', False, 'missing is not managed')
    assert store.names() == ['db01']

    ops.destroy()
    assert store.names() == []
    assert not fake.addresses


def test_list_resources(ops):
    ops.apply(MANIFEST)
    rows = ops.list_resources('web01')
    assert len(rows) == 1
    assert rows[0]['ip_address'] == '10.0.0.2'
    assert ops.list_resources('nope') == []
