import pytest

from mika.errors import NotFoundError, ValidationError
from mika.extensions import db
from mika.leads.capture import capture_lead
from mika.leads.stages import change_stage, is_forward_transition
from mika.models import LeadStageHistory
from mika.tracking.payloads import LeadPayload


@pytest.fixture
def lead_id(app, workspace):
    lead_id, _ = capture_lead("ws1", LeadPayload.from_json({"email": "ana@example.com"}))
    db.session.commit()
    return lead_id


def _history(lead_id):
    """History rows in transition order, following the from_stage chain."""
    rows = LeadStageHistory.query.filter_by(lead_id=lead_id).all()
    ordered = [next(row for row in rows if row.from_stage is None)]
    while len(ordered) < len(rows):
        ordered.append(next(
            row for row in rows if row not in ordered and row.from_stage == ordered[-1].to_stage
        ))
    return ordered


def test_any_transition_allowed_by_default(app, lead_id):
    change_stage("ws1", lead_id, "customer")
    lead = change_stage("ws1", lead_id, "engaged", changed_by="kanban", reason="dragged back")
    db.session.commit()

    assert lead.stage == "engaged"
    history = _history(lead_id)
    assert [row.to_stage for row in history] == ["captured", "customer", "engaged"]
    assert history[-1].from_stage == "customer"
    assert history[-1].changed_by == "kanban"


def test_transition_closes_previous_row(app, lead_id):
    change_stage("ws1", lead_id, "qualified")
    db.session.commit()

    captured, qualified = _history(lead_id)
    assert captured.exited_at is not None
    assert captured.duration_seconds >= 0
    assert qualified.exited_at is None


def test_same_stage_is_a_no_op(app, lead_id):
    change_stage("ws1", lead_id, "captured")
    db.session.commit()

    assert len(_history(lead_id)) == 1


def test_strict_mode_rejects_backwards_moves(app, lead_id):
    change_stage("ws1", lead_id, "opportunity", strict=True)

    with pytest.raises(ValidationError) as excinfo:
        change_stage("ws1", lead_id, "engaged", strict=True)
    assert excinfo.value.code == "invalid_stage_transition"


def test_strict_mode_from_config(app, lead_id):
    app.config["STRICT_STAGE_TRANSITIONS"] = True
    change_stage("ws1", lead_id, "churned")

    with pytest.raises(ValidationError):
        change_stage("ws1", lead_id, "engaged")


def test_customer_stage_marks_conversion(app, lead_id):
    lead = change_stage("ws1", lead_id, "customer")

    assert lead.converted_at is not None


def test_forward_transition_policy():
    assert is_forward_transition("captured", "qualified")
    assert is_forward_transition("opportunity", "churned")
    assert not is_forward_transition("qualified", "engaged")
    assert not is_forward_transition("churned", "captured")


def test_unknown_stage_rejected(app, lead_id):
    with pytest.raises(ValidationError) as excinfo:
        change_stage("ws1", lead_id, "won")
    assert excinfo.value.code == "invalid_stage"


def test_unknown_lead_not_found(app, workspace):
    with pytest.raises(NotFoundError):
        change_stage("ws1", "missing", "engaged")


def test_patch_endpoint_changes_stage(client, lead_id):
    response = client.patch(
        "/api/leads",
        json={"leadId": lead_id, "stage": "qualified", "reason": "booked demo"},
        headers={"X-Workspace-ID": "ws1"},
    )

    assert response.status_code == 200
    assert response.get_json()["lead"]["stage"] == "qualified"
    assert _history(lead_id)[-1].reason == "booked demo"


def test_patch_endpoint_requires_workspace(client, lead_id):
    response = client.patch("/api/leads", json={"leadId": lead_id, "stage": "qualified"})

    assert response.status_code == 400
    assert response.get_json()["error"] == "workspace_required"
