from decimal import Decimal

import pytest

from conftest import accessory, boq_item, driver, line, product, snapshot
from core.exceptions import (
    AlreadyApproved,
    InvalidAmount,
    InvalidTransition,
    LineItemNotFound,
    VersionLocked,
)
from models.domain import Area, VersionStatus, check_totals
from services import boq_lifecycle
from services.aggregator import aggregate


def _draft(subtotal="100000"):
    return snapshot([boq_item(1, "Lobby", "DL-12-NW", 1, subtotal)])


def test_build_version_from_buckets():
    buckets = aggregate(
        [line(1, 1, product("DL-12-NW", 1200), 25, driver=driver("DRV-350", 450), accessories=[accessory("LENS-30", 50)])],
        [Area(1, "Lobby")],
    )
    version = boq_lifecycle.build_version(7, buckets, existing_version_numbers=[1, 3, 2])

    assert version.version_number == 4
    assert version.status is VersionStatus.DRAFT
    assert version.margin_percent == 0
    assert version.subtotal == Decimal("42500")
    assert version.grand_total == Decimal("42500")
    assert [item.catalog_key for item in version.items] == ["DL-12-NW", "DRV-350", "LENS-30"]
    assert {item.area_name for item in version.items} == {"Lobby"}
    assert check_totals(version)


def test_first_version_is_number_one():
    assert boq_lifecycle.build_version(1, [], []).version_number == 1


def test_margin_arithmetic():
    version = boq_lifecycle.apply_margin(_draft(), 15)
    assert abs(version.grand_total - Decimal("115000.0")) <= Decimal("1e-6")
    assert version.margin_amount == Decimal("15000")
    assert version.subtotal == Decimal("100000")


def test_apply_margin_does_not_mutate_input():
    draft = _draft()
    boq_lifecycle.apply_margin(draft, 10)
    assert draft.margin_percent == 0
    assert draft.grand_total == Decimal("100000")


@pytest.mark.parametrize("bad", [-1, "abc", float("nan"), float("inf"), None])
def test_invalid_margin_rejected(bad):
    with pytest.raises(InvalidAmount):
        boq_lifecycle.apply_margin(_draft(), bad)


def test_unit_rate_edit_recomputes_totals():
    draft = snapshot([
        boq_item(1, "Lobby", "DL-12-NW", 10, 100),
        boq_item(2, "Lobby", "DRV-350", 10, 40, item_type="DRIVER"),
    ])
    draft = boq_lifecycle.apply_margin(draft, 10)
    edited = boq_lifecycle.update_unit_rate(draft, 2, "45")

    assert edited.items[1].unit_rate == Decimal("45")
    assert edited.items[1].total == Decimal("450")
    assert edited.subtotal == Decimal("1450")
    assert edited.grand_total == Decimal("1595")
    assert check_totals(edited)


def test_unit_rate_edit_unknown_item():
    with pytest.raises(LineItemNotFound):
        boq_lifecycle.update_unit_rate(_draft(), 99, 10)


def test_generate_margin_approve_margin_is_rejected():
    version = boq_lifecycle.apply_margin(_draft(), 15)
    approved = boq_lifecycle.approve(version)
    assert approved.status is VersionStatus.APPROVED

    with pytest.raises(VersionLocked):
        boq_lifecycle.apply_margin(approved, 20)
    with pytest.raises(VersionLocked):
        boq_lifecycle.update_unit_rate(approved, 1, 1)

    assert approved.margin_percent == Decimal("15")
    assert abs(approved.grand_total - Decimal("115000")) <= Decimal("1e-6")


def test_approving_twice_reports_already_approved():
    approved = boq_lifecycle.approve(_draft())
    with pytest.raises(AlreadyApproved):
        boq_lifecycle.approve(approved)


def test_finalize_transitions():
    draft = _draft()
    with pytest.raises(InvalidTransition):
        boq_lifecycle.finalize(draft)

    final = boq_lifecycle.finalize(boq_lifecycle.approve(draft))
    assert final.status is VersionStatus.FINAL
    assert final.is_locked

    with pytest.raises(VersionLocked):
        boq_lifecycle.finalize(final)
    with pytest.raises(AlreadyApproved):
        boq_lifecycle.approve(final)
    with pytest.raises(VersionLocked):
        boq_lifecycle.apply_margin(final, 5)
