from __future__ import annotations

import pytest

from drugtrace.core import (
    MANUFACTURING_STAGE,
    AuthorizationError,
    ConflictError,
    DrugRegistry,
    DrugStatus,
    ManualClock,
    NotFoundError,
    Role,
    StateError,
    ValidationError,
    derive_drug_id,
)

T0 = 1_700_000_000.0


def _supply_chain() -> tuple[DrugRegistry, ManualClock]:
    clock = ManualClock(T0)
    reg = DrugRegistry("admin", clock=clock)
    reg.register_user("admin", "maker", Role.MANUFACTURER, "Maker")
    reg.register_user("admin", "dist", Role.DISTRIBUTOR, "Dist")
    reg.register_user("admin", "pharm", Role.PHARMACY, "Pharm")
    reg.register_user("admin", "reg", Role.REGULATOR, "Regulator")
    return reg, clock


def test_register_drug_initial_state() -> None:
    reg, _ = _supply_chain()

    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)
    assert drug_id == derive_drug_id("Aspirin", "B001", "maker", T0)

    info = reg.get_drug_info("maker", drug_id)
    assert info.name == "Aspirin"
    assert info.batch_number == "B001"
    assert info.manufacturer == "maker"
    assert info.current_owner == "maker"
    assert info.manufacture_date == T0
    assert info.expiry_date == T0 + 1000
    assert info.current_stage == MANUFACTURING_STAGE
    assert info.status is DrugStatus.ACTIVE
    assert info.quality_verified is False

    hist = reg.get_drug_history("maker", drug_id)
    assert hist.stages == (MANUFACTURING_STAGE,)
    assert hist.owners == ("maker",)
    assert hist.timestamps == (T0,)

    assert reg.get_total_drugs() == 1
    assert reg.list_drug_ids() == [drug_id]
    assert reg.get_user_drugs("maker") == [drug_id]


def test_register_drug_requires_active_manufacturer() -> None:
    reg, _ = _supply_chain()

    for caller in ("dist", "pharm", "reg", "admin", "stranger"):
        with pytest.raises(AuthorizationError):
            reg.register_drug(caller, "Aspirin", "B001", T0 + 1000)
    assert reg.get_total_drugs() == 0


@pytest.mark.parametrize("expiry", [T0, T0 - 1, float("nan"), float("inf"), "soon"])
def test_register_drug_rejects_invalid_expiry(expiry: object) -> None:
    reg, _ = _supply_chain()
    with pytest.raises(ValidationError):
        reg.register_drug("maker", "Aspirin", "B001", expiry)  # type: ignore[arg-type]
    assert reg.get_total_drugs() == 0


def test_register_drug_id_collision_is_rejected() -> None:
    reg, clock = _supply_chain()

    first = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)
    with pytest.raises(ConflictError):
        reg.register_drug("maker", "Aspirin", "B001", T0 + 2000)

    assert reg.list_drug_ids() == [first]
    assert reg.get_user_drugs("maker") == [first]

    clock.advance(1.0)
    second = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)
    assert second != first


def test_transfer_updates_owner_stage_history_and_index() -> None:
    reg, clock = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)

    clock.advance(10.0)
    updated = reg.transfer_ownership("maker", drug_id, "dist", "Distribution")

    assert updated.current_owner == "dist"
    assert updated.current_stage == "Distribution"
    assert updated.manufacturer == "maker"
    assert updated.revision == 2

    hist = reg.get_drug_history("dist", drug_id)
    assert hist.stages == (MANUFACTURING_STAGE, "Distribution")
    assert hist.owners == ("maker", "dist")
    assert hist.timestamps == (T0, T0 + 10.0)
    assert reg.get_user_drugs("dist") == [drug_id]
    # Previous holders keep the id in their index.
    assert reg.get_user_drugs("maker") == [drug_id]


def test_transfer_only_by_current_owner() -> None:
    reg, _ = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)

    # Regulators and the admin can read but not move custody.
    for caller in ("dist", "reg", "admin"):
        with pytest.raises(AuthorizationError):
            reg.transfer_ownership(caller, drug_id, "pharm", "Pharmacy")

    reg.transfer_ownership("maker", drug_id, "dist", "Distribution")
    with pytest.raises(AuthorizationError):
        reg.transfer_ownership("maker", drug_id, "pharm", "Pharmacy")


def test_transfer_by_unregistered_caller_is_unauthorized() -> None:
    reg, _ = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)

    with pytest.raises(AuthorizationError):
        reg.transfer_ownership("stranger", drug_id, "dist", "Distribution")


def test_transfer_to_unknown_recipient_fails() -> None:
    reg, _ = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)

    with pytest.raises(NotFoundError):
        reg.transfer_ownership("maker", drug_id, "ghost", "Distribution")
    assert reg.get_drug_info("maker", drug_id).current_owner == "maker"


def test_transfer_rejects_empty_stage() -> None:
    reg, _ = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)

    with pytest.raises(ValidationError):
        reg.transfer_ownership("maker", drug_id, "dist", "  ")
    assert reg.get_drug_history("maker", drug_id).stages == (MANUFACTURING_STAGE,)


def test_transfer_after_expiry_is_a_state_error() -> None:
    reg, clock = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 100)

    clock.advance(99.0)
    assert reg.is_drug_expired(drug_id) is False
    reg.transfer_ownership("maker", drug_id, "dist", "Distribution")

    clock.advance(1.0)
    assert reg.is_drug_expired(drug_id) is True
    with pytest.raises(StateError):
        reg.transfer_ownership("dist", drug_id, "pharm", "Pharmacy")

    # Expiry is observational only.
    info = reg.get_drug_info("dist", drug_id)
    assert info.status is DrugStatus.ACTIVE
    assert info.current_owner == "dist"


def test_transfer_to_same_recipient_twice_duplicates_index_entries() -> None:
    reg, _ = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)

    reg.transfer_ownership("maker", drug_id, "dist", "Distribution")
    reg.transfer_ownership("dist", drug_id, "maker", "Returned")
    reg.transfer_ownership("maker", drug_id, "dist", "Distribution")

    assert reg.get_user_drugs("dist") == [drug_id, drug_id]
    assert reg.get_user_drugs("maker") == [drug_id, drug_id]


def test_verify_quality_pass() -> None:
    reg, _ = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)

    updated = reg.verify_quality("reg", drug_id, True)
    assert updated.quality_verified is True
    assert updated.status is DrugStatus.ACTIVE

    # Passing is not terminal: it can still be recalled.
    recalled = reg.recall_drug("maker", drug_id, "Packaging defect")
    assert recalled.status is DrugStatus.RECALLED
    assert recalled.quality_verified is True


def test_verify_quality_failure_recalls() -> None:
    reg, _ = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)
    reg.verify_quality("reg", drug_id, True)

    updated = reg.verify_quality("admin", drug_id, False)
    assert updated.quality_verified is False
    assert updated.status is DrugStatus.RECALLED


def test_verify_quality_requires_regulator() -> None:
    reg, _ = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)

    for caller in ("maker", "dist", "pharm", "stranger"):
        with pytest.raises(AuthorizationError):
            reg.verify_quality(caller, drug_id, True)
    assert reg.get_drug_info("maker", drug_id).quality_verified is False


def test_recall_by_manufacturer_or_regulator_only() -> None:
    reg, _ = _supply_chain()
    a = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)
    reg.transfer_ownership("maker", a, "dist", "Distribution")

    # Holding the drug is not enough.
    with pytest.raises(AuthorizationError):
        reg.recall_drug("dist", a, "Holder wants it gone")

    # The manufacturer can recall after giving up custody.
    assert reg.recall_drug("maker", a, "Contamination").status is DrugStatus.RECALLED

    b = reg.register_drug("maker", "Ibuprofen", "B002", T0 + 1000)
    assert reg.recall_drug("reg", b, "Regulatory hold").status is DrugStatus.RECALLED


def test_recall_twice_is_rejected() -> None:
    reg, _ = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)
    reg.recall_drug("maker", drug_id, "first")

    with pytest.raises(StateError):
        reg.recall_drug("maker", drug_id, "second")


def test_read_authorization() -> None:
    reg, _ = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)
    reg.transfer_ownership("maker", drug_id, "dist", "Distribution")

    assert reg.get_drug_info("dist", drug_id).current_owner == "dist"
    assert reg.get_drug_info("reg", drug_id).current_owner == "dist"
    assert reg.get_drug_info("admin", drug_id).current_owner == "dist"

    # Former owners lose read access with custody.
    for caller in ("maker", "pharm", "stranger"):
        with pytest.raises(AuthorizationError):
            reg.get_drug_info(caller, drug_id)
        with pytest.raises(AuthorizationError):
            reg.get_drug_history(caller, drug_id)

    assert reg.is_authorized_for_drug("reg", drug_id)
    assert not reg.is_authorized_for_drug("maker", drug_id)


@pytest.mark.parametrize("drug_id", ["", "deadbeef"])
def test_unknown_drug_is_not_found_everywhere(drug_id: str) -> None:
    reg, _ = _supply_chain()

    with pytest.raises(NotFoundError):
        reg.get_drug_info("admin", drug_id)
    with pytest.raises(NotFoundError):
        reg.get_drug_history("admin", drug_id)
    with pytest.raises(NotFoundError):
        reg.is_drug_expired(drug_id)
    with pytest.raises(NotFoundError):
        reg.is_authorized_for_drug("admin", drug_id)
    with pytest.raises(NotFoundError):
        reg.transfer_ownership("maker", drug_id, "dist", "Distribution")
    with pytest.raises(NotFoundError):
        reg.verify_quality("reg", drug_id, True)
    with pytest.raises(NotFoundError):
        reg.recall_drug("maker", drug_id, "why")


def test_drug_snapshot_reads_info_and_expiry_together() -> None:
    reg, clock = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 100)

    info, expired = reg.get_drug_snapshot("maker", drug_id)
    assert info == reg.get_drug_info("maker", drug_id)
    assert expired is False

    clock.advance(100.0)
    info, expired = reg.get_drug_snapshot("reg", drug_id)
    assert expired is True
    assert info.status is DrugStatus.ACTIVE

    with pytest.raises(AuthorizationError):
        reg.get_drug_snapshot("pharm", drug_id)
    with pytest.raises(NotFoundError):
        reg.get_drug_snapshot("admin", "missing")


def test_transfer_rejects_non_string_recipient_after_ownership_checks() -> None:
    reg, _ = _supply_chain()
    drug_id = reg.register_drug("maker", "Aspirin", "B001", T0 + 1000)

    with pytest.raises(AuthorizationError):
        reg.transfer_ownership("dist", drug_id, None, "Distribution")  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        reg.transfer_ownership("maker", drug_id, None, "Distribution")  # type: ignore[arg-type]
    with pytest.raises(NotFoundError):
        reg.transfer_ownership("maker", drug_id, " dist ", "Distribution")

    assert reg.get_drug_info("maker", drug_id).current_owner == "maker"
