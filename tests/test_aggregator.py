import random
from decimal import Decimal

from conftest import accessory, driver, line, product
from models.domain import Area, InquiryMode, ItemKind
from services.aggregator import (
    PROJECT_WIDE_AREA,
    aggregate,
    grand_subtotal,
    line_total,
    summarize_by_type,
)

AREAS = [Area(1, "Lobby"), Area(2, "Corridor")]


def _sample_lines():
    dl = product("DL-12-NW", 1200, wattage=Decimal("12"))
    wpr = product("WPR-18-WW", 3200, wattage=Decimal("18"))
    drv = driver("DRV-350", 450)
    lens = accessory("LENS-30", 50)
    clip = accessory("CLIP-2", "15.5")
    return [
        line(1, 1, dl, 25, driver=drv, accessories=[lens]),
        line(2, 2, wpr, 12),
        line(3, 2, dl, 3, accessories=[lens, clip]),
        line(4, 1, driver("DRV-700", "610.25"), 2),
        line(5, 2, accessory("MOUNT-K", 80), 4),
    ]


def test_lobby_line_with_driver_and_accessory():
    lobby_line = line(
        1, 1, product("DL-12-NW", 1200), 25,
        driver=driver("DRV-350", 450),
        accessories=[accessory("LENS-30", 50)],
    )
    buckets = aggregate([lobby_line], [Area(1, "Lobby")], InquiryMode.AREA_WISE)

    assert len(buckets) == 1
    assert buckets[0].area_name == "Lobby"
    assert buckets[0].subtotal == Decimal("42500")


def test_bucket_subtotals_match_independent_line_totals():
    lines = _sample_lines()
    expected = Decimal("0")
    for l in lines:
        per_unit = l.item.unit_price
        if l.driver:
            per_unit += l.driver.unit_price
        per_unit += sum((a.unit_price for a in l.accessories), Decimal("0"))
        expected += per_unit * l.quantity

    buckets = aggregate(lines, AREAS)
    assert grand_subtotal(buckets) == expected
    assert sum(line_total(l) for l in lines) == expected


def test_entries_add_up_to_bucket_subtotal():
    for bucket in aggregate(_sample_lines(), AREAS):
        assert sum((e.total for e in bucket.entries), Decimal("0")) == bucket.subtotal


def test_attached_components_get_their_own_entries():
    lobby = aggregate(_sample_lines(), AREAS)[0]
    keyed = {(e.item_type, e.catalog_key): e for e in lobby.entries}

    assert keyed[(ItemKind.PRODUCT, "DL-12-NW")].qty == 25
    assert keyed[(ItemKind.DRIVER, "DRV-350")].qty == 25
    assert keyed[(ItemKind.ACCESSORY, "LENS-30")].total == Decimal("1250")
    assert keyed[(ItemKind.DRIVER, "DRV-700")].total == Decimal("1220.50")


def test_same_catalog_key_rolls_up_within_area():
    dl = product("DL-12-NW", 100)
    buckets = aggregate([line(1, 1, dl, 2), line(2, 1, dl, 3)], AREAS)
    entries = buckets[0].entries
    assert len(entries) == 1
    assert entries[0].qty == 5
    assert entries[0].total == Decimal("500")


def test_aggregate_is_idempotent_and_order_independent():
    lines = _sample_lines()
    first = aggregate(lines, AREAS)
    assert aggregate(lines, AREAS) == first

    shuffled = list(lines)
    random.Random(7).shuffle(shuffled)
    assert aggregate(shuffled, AREAS) == first


def test_project_level_collapses_into_one_bucket():
    lines = _sample_lines()
    area_wise = aggregate(lines, AREAS, InquiryMode.AREA_WISE)
    project_level = aggregate(lines, AREAS, InquiryMode.PROJECT_LEVEL)

    assert len(project_level) == 1
    assert project_level[0].area_name == PROJECT_WIDE_AREA
    assert project_level[0].area_id is None
    assert project_level[0].subtotal == grand_subtotal(area_wise)


def test_empty_area_list_collapses_into_one_bucket():
    buckets = aggregate(_sample_lines(), [])
    assert [b.area_name for b in buckets] == [PROJECT_WIDE_AREA]


def test_lines_in_unknown_areas_are_excluded():
    lines = _sample_lines() + [line(99, 42, product("GHOST", 1000), 10)]
    buckets = aggregate(lines, AREAS)

    assert grand_subtotal(buckets) == grand_subtotal(aggregate(_sample_lines(), AREAS))
    assert all(l.id != 99 for b in buckets for l in b.lines)


def test_areas_without_lines_still_get_a_bucket():
    buckets = aggregate([], AREAS)
    assert [(b.area_name, b.subtotal) for b in buckets] == [("Lobby", 0), ("Corridor", 0)]


def test_summarize_by_type():
    summary = summarize_by_type(aggregate(_sample_lines(), AREAS))

    assert summary.quantities[ItemKind.PRODUCT] == 25 + 12 + 3
    assert summary.quantities[ItemKind.DRIVER] == 25 + 2
    assert summary.quantities[ItemKind.ACCESSORY] == 25 + 3 + 3 + 4
    assert summary.total_wattage == Decimal("12") * 28 + Decimal("18") * 12
    assert sum(summary.amounts.values(), Decimal("0")) == summary.subtotal
