from decimal import Decimal

from conftest import boq_item, snapshot
from models.domain import DiffStatus
from services.diff_engine import diff

_SWAP = {
    DiffStatus.ADDED: DiffStatus.REMOVED,
    DiffStatus.REMOVED: DiffStatus.ADDED,
    DiffStatus.MODIFIED: DiffStatus.MODIFIED,
    DiffStatus.UNCHANGED: DiffStatus.UNCHANGED,
}


def _pair():
    old = snapshot([
        boq_item(1, "Corridor", "WPR-18-WW", 12, 3200),
        boq_item(2, "Lobby", "DL-12-NW", 25, 1200),
        boq_item(3, "Lobby", "DRV-350", 25, 450, item_type="DRIVER"),
        boq_item(4, "Lobby", "LENS-30", 25, 50, item_type="ACCESSORY"),
    ], version_number=1)
    new = snapshot([
        boq_item(11, "Lobby", "DL-12-NW", 30, 1200),
        boq_item(12, "Lobby", "DRV-350", 25, 450, item_type="DRIVER"),
        boq_item(13, "Lobby", "LENS-30", 25, 55, item_type="ACCESSORY"),
        boq_item(14, "Stairs", "STEP-3", 8, 700),
    ], version_number=2, margin="10")
    return old, new


def _by_key(report):
    return {record.key: record for record in report.records}


def test_removed_item_scenario():
    old = snapshot([boq_item(1, "Corridor", "WPR-18-WW", 12, 3200)], version_number=1)
    new = snapshot([], version_number=2)
    report = diff(old, new)

    assert len(report.records) == 1
    record = report.records[0]
    assert record.key == ("WPR-18-WW", "Corridor")
    assert record.status is DiffStatus.REMOVED
    assert record.new is None
    assert record.difference == Decimal("-38400")


def test_classification():
    records = _by_key(diff(*_pair()))

    assert records[("WPR-18-WW", "Corridor")].status is DiffStatus.REMOVED
    assert records[("STEP-3", "Stairs")].status is DiffStatus.ADDED
    assert records[("STEP-3", "Stairs")].difference == Decimal("5600")
    assert records[("DRV-350", "Lobby")].status is DiffStatus.UNCHANGED
    assert records[("DRV-350", "Lobby")].difference == 0

    qty_change = records[("DL-12-NW", "Lobby")]
    assert qty_change.status is DiffStatus.MODIFIED
    assert qty_change.difference == Decimal("6000")

    price_change = records[("LENS-30", "Lobby")]
    assert price_change.status is DiffStatus.MODIFIED
    assert price_change.difference == Decimal("125")


def test_line_ids_do_not_affect_matching():
    old = snapshot([boq_item(1, "Lobby", "DL-12-NW", 5, 100)])
    new = snapshot([boq_item(500, "Lobby", "DL-12-NW", 5, 100)], version_number=2)
    assert [r.status for r in diff(old, new).records] == [DiffStatus.UNCHANGED]


def test_every_key_appears_exactly_once():
    old, new = _pair()
    report = diff(old, new)
    union = {(i.catalog_key, i.area_name) for i in old.items} | {(i.catalog_key, i.area_name) for i in new.items}

    keys = [record.key for record in report.records]
    assert len(keys) == len(set(keys))
    assert set(keys) == union
    assert sum(report.counts().values()) == len(union)


def test_diff_is_symmetric():
    old, new = _pair()
    forward = _by_key(diff(old, new))
    backward = _by_key(diff(new, old))

    assert forward.keys() == backward.keys()
    for key, record in forward.items():
        assert backward[key].status is _SWAP[record.status]
        assert backward[key].difference == -record.difference


def test_header_uses_snapshot_totals_not_item_deltas():
    items = [boq_item(1, "Lobby", "DL-12-NW", 10, 100)]
    old = snapshot(items, version_number=1, margin="10")
    new = snapshot(items, version_number=2, margin="20")
    report = diff(old, new)

    assert all(record.status is DiffStatus.UNCHANGED for record in report.records)
    assert report.header.subtotal.difference == 0
    assert report.header.grand_total.old == Decimal("1100")
    assert report.header.grand_total.new == Decimal("1200")
    assert report.header.grand_total.difference == Decimal("100")


def test_compare_against_version_zero():
    _, new = _pair()
    report = diff(None, new)

    assert {r.status for r in report.records} == {DiffStatus.ADDED}
    assert report.old_version == 0
    assert report.header.subtotal.old == 0
    assert report.header.subtotal.difference == new.subtotal

    removed = diff(new, snapshot([], version_number=3))
    assert {r.status for r in removed.records} == {DiffStatus.REMOVED}


def test_diff_ignores_input_ordering():
    old, new = _pair()
    reordered = snapshot(reversed(new.items), version_number=2, margin="10")
    assert diff(old, new).records == diff(old, reordered).records


def test_duplicate_keys_in_one_snapshot_are_merged():
    old = snapshot([
        boq_item(1, "Lobby", "DL-12-NW", 2, 100),
        boq_item(2, "Lobby", "DL-12-NW", 2, 200),
    ])
    new = snapshot([boq_item(3, "Lobby", "DL-12-NW", 4, 150)], version_number=2)
    records = diff(old, new).records

    assert len(records) == 1
    assert records[0].old.qty == 4
    assert records[0].old.total == Decimal("600")
    assert records[0].status is DiffStatus.UNCHANGED
