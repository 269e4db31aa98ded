import pytest
from fastapi import HTTPException

from edara.services.ticket_service import ALLOWED_TRANSITIONS, ensure_transition, normalize

ALL_STATUSES = set(ALLOWED_TRANSITIONS.keys()) | {
    status for allowed in ALLOWED_TRANSITIONS.values() for status in allowed
}


def test_allow_list_accepts_whitelisted_transitions():
    """Cada transición listada explícitamente debe ser aceptada."""
    for old_status, allowed_destinations in ALLOWED_TRANSITIONS.items():
        for new_status in allowed_destinations:
            ensure_transition(old_status, new_status)


def test_disallow_invalid_transitions():
    """Cualquier transición fuera de la lista blanca debe rechazarse con 400."""
    for old_status, allowed_destinations in ALLOWED_TRANSITIONS.items():
        forbidden = ALL_STATUSES - allowed_destinations
        for new_status in forbidden:
            expected_detail = f"Transition not allowed: {old_status} → {new_status}"
            with pytest.raises(HTTPException) as exc:
                ensure_transition(old_status, new_status)
            assert exc.value.status_code == 400
            assert exc.value.detail == expected_detail


def test_terminal_states_have_no_exits():
    """Rechazado y cerrado no admiten ningún cambio."""
    terminal_states = [status for status, allowed in ALLOWED_TRANSITIONS.items() if not allowed]
    assert set(terminal_states) == {"rejected", "closed"}
    for terminal in terminal_states:
        for candidate in ALL_STATUSES:
            with pytest.raises(HTTPException) as exc:
                ensure_transition(terminal, candidate)
            assert exc.value.status_code == 400


def test_normalize_fills_missing_fields_only():
    assert normalize({"status": "pending", "_id": "x"}) == {
        "status": "pending", "next_admin_order": 0, "is_purchase_phase": False,
    }
    assert normalize({})["status"] == "pending"
    # los estados no se reinterpretan
    assert normalize({"status": "approved", "next_admin_order": 2})["next_admin_order"] == 2
