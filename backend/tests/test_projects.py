"""
Project ledger tests.

Verifies:
- completion percentage: 0 with no milestones, half-up rounding
- completed_at is stamped from status, never taken from input
- expense totals are recomputed from rows on every read
- clients see and edit only their own projects; admins see all
- deleting a project removes every record it owns
- progress images upload to disk and link to a milestone of the same project
"""

import io
import os
from decimal import Decimal

import pytest

from buildmart.errors import NotFoundError, PermissionDeniedError, ValidationError
from buildmart.models import Milestone, ProgressImage, Project, ProjectExpense, ProjectInventory
from buildmart.services import file_storage_service, progress_service, project_service

from conftest import principal_for


@pytest.fixture
def project(client_user):
    return project_service.create_project(
        principal_for(client_user), patch={"name": "Duplex build", "location": "Abuja"}
    )


def _milestone(owner, project, title, status="pending"):
    return project_service.create_milestone(
        principal_for(owner), project.id, patch={"title": title, "status": status}
    )


# =============================================================================
# COMPLETION
# =============================================================================


class TestCompletion:

    @pytest.mark.parametrize(
        "completed,total,expected",
        [
            (0, 0, 0),
            (0, 3, 0),
            (1, 3, 33),
            (2, 3, 67),
            (1, 8, 13),
            (1, 200, 1),
            (3, 3, 100),
        ],
    )
    def test_percentage(self, completed, total, expected):
        assert progress_service.completion_percentage(completed, total) == expected

    def test_no_milestones_is_zero(self, db_session, project):
        assert progress_service.project_completion(project.id) == 0

    def test_all_completed_is_100(self, db_session, client_user, project):
        _milestone(client_user, project, "Foundation", "completed")
        _milestone(client_user, project, "Roof", "completed")
        assert progress_service.project_completion(project.id) == 100

    def test_mixed(self, db_session, client_user, project):
        _milestone(client_user, project, "Foundation", "completed")
        _milestone(client_user, project, "Walls", "in_progress")
        _milestone(client_user, project, "Roof")
        assert progress_service.project_completion(project.id) == 33


class TestMilestones:

    def test_completed_at_stamped(self, db_session, client_user, project):
        me = principal_for(client_user)
        milestone = _milestone(client_user, project, "Foundation")
        assert milestone.completed_at is None

        milestone = project_service.update_milestone(me, project.id, milestone.id, patch={"status": "completed"})
        assert milestone.completed_at is not None

        milestone = project_service.update_milestone(me, project.id, milestone.id, patch={"status": "in_progress"})
        assert milestone.completed_at is None

    def test_completed_at_not_writable(self, client, db_session, project, client_headers):
        resp = client.post(
            f"/api/projects/{project.id}/milestones",
            json={"title": "Roof", "completedAt": "2020-01-01T00:00:00Z"},
            headers=client_headers,
        )
        assert resp.status_code == 400

    def test_bad_status(self, client, db_session, project, client_headers):
        resp = client.post(
            f"/api/projects/{project.id}/milestones",
            json={"title": "Roof", "status": "done"},
            headers=client_headers,
        )
        assert resp.status_code == 400

    def test_milestone_of_other_project_not_found(self, db_session, client_user, project):
        me = principal_for(client_user)
        other = project_service.create_project(me, patch={"name": "Other"})
        milestone = _milestone(client_user, other, "Elsewhere")
        with pytest.raises(NotFoundError):
            project_service.update_milestone(me, project.id, milestone.id, patch={"title": "x"})


# =============================================================================
# EXPENSES AND INVENTORY
# =============================================================================


class TestLedger:

    def _expense(self, owner, project, amount, category="materials"):
        return project_service.create_expense(
            principal_for(owner),
            project.id,
            patch={
                "description": "Purchase",
                "amount": Decimal(amount),
                "category": category,
                "payment_date": project.created_at,
            },
        )

    def test_total_expenses(self, db_session, client_user, project):
        assert progress_service.total_expenses(project.id) == Decimal("0.00")
        self._expense(client_user, project, "100.50")
        self._expense(client_user, project, "20.25", category="labor")
        assert progress_service.total_expenses(project.id) == Decimal("120.75")
        assert progress_service.expenses_by_category(project.id) == {"labor": "20.25", "materials": "100.50"}

    def test_inventory_total_cost(self, db_session, client_user, project):
        me = principal_for(client_user)
        item = project_service.create_inventory_item(
            me, project.id, patch={"item_name": "Cement", "unit": "bags", "quantity": 20, "unit_cost": Decimal("15.00")}
        )
        assert item.total_cost == Decimal("300.00")

        item = project_service.update_inventory_item(me, project.id, item.id, patch={"quantity": 10})
        assert item.total_cost == Decimal("150.00")
        assert progress_service.inventory_value(project.id) == Decimal("150.00")

    def test_expense_api_validation(self, client, db_session, project, client_headers):
        base = {"description": "Sand", "amount": "50.00", "category": "materials", "paymentDate": "2026-03-01"}

        resp = client.post(f"/api/projects/{project.id}/expenses", json=base, headers=client_headers)
        assert resp.status_code == 201
        assert resp.json["amount"] == "50.00"

        for bad in ({"amount": "0"}, {"amount": "-5"}, {"category": "snacks"}, {"paymentDate": "yesterday"}):
            resp = client.post(f"/api/projects/{project.id}/expenses", json={**base, **bad}, headers=client_headers)
            assert resp.status_code == 400, bad

        listed = client.get(f"/api/projects/{project.id}/expenses", headers=client_headers)
        assert listed.json["total"] == "50.00"
        assert len(listed.json["items"]) == 1

    def test_summary(self, client, db_session, client_user, project, client_headers):
        _milestone(client_user, project, "Foundation", "completed")
        _milestone(client_user, project, "Roof")
        self._expense(client_user, project, "10.00")

        resp = client.get(f"/api/projects/{project.id}/summary", headers=client_headers)
        assert resp.status_code == 200
        body = resp.json
        assert body["completion_percentage"] == 50
        assert body["milestones"] == {"total": 2, "pending": 1, "in_progress": 0, "completed": 1}
        assert body["total_expenses"] == "10.00"
        assert body["progress_image_count"] == 0


# =============================================================================
# OWNERSHIP
# =============================================================================


class TestOwnership:

    def test_other_client_forbidden(self, client, db_session, project, client_b_headers):
        assert client.get(f"/api/projects/{project.id}", headers=client_b_headers).status_code == 403
        resp = client.post(
            f"/api/projects/{project.id}/milestones", json={"title": "Sneaky"}, headers=client_b_headers
        )
        assert resp.status_code == 403
        assert resp.json["kind"] == "Forbidden"

    def test_other_client_cannot_add_expense(self, db_session, client_user_b, project):
        with pytest.raises(PermissionDeniedError):
            project_service.create_expense(
                principal_for(client_user_b),
                project.id,
                patch={"description": "x", "amount": Decimal("1.00"), "category": "other", "payment_date": project.created_at},
            )

    def test_listing_scoped(self, db_session, client_user, client_user_b, admin, project):
        theirs = project_service.create_project(principal_for(client_user_b), patch={"name": "Theirs"})

        assert [p.id for p in project_service.list_projects(principal_for(client_user))] == [project.id]
        all_ids = {p.id for p in project_service.list_projects(principal_for(admin))}
        assert all_ids == {project.id, theirs.id}

    def test_admin_can_edit(self, client, db_session, project, admin_headers):
        resp = client.put(f"/api/projects/{project.id}", json={"status": "on_hold"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["status"] == "on_hold"

    def test_date_range(self, client, db_session, project, client_headers):
        resp = client.put(
            f"/api/projects/{project.id}",
            json={"startDate": "2026-05-01", "endDate": "2026-04-01"},
            headers=client_headers,
        )
        assert resp.status_code == 400

    def test_create_sets_owner(self, client, db_session, client_user, client_headers):
        resp = client.post("/api/projects", json={"name": "Warehouse", "client_id": "x"}, headers=client_headers)
        assert resp.status_code == 400

        resp = client.post("/api/projects", json={"name": "Warehouse"}, headers=client_headers)
        assert resp.status_code == 201
        assert resp.json["client_id"] == client_user.id
        assert resp.json["status"] == "active"


# =============================================================================
# DELETION
# =============================================================================


class TestDelete:

    def test_cascade(self, client, db_session, client_user, project, client_headers):
        me = principal_for(client_user)
        _milestone(client_user, project, "Foundation")
        project_service.create_inventory_item(me, project.id, patch={"item_name": "Sand", "unit": "t"})
        project_service.create_expense(
            me, project.id,
            patch={"description": "x", "amount": Decimal("1.00"), "category": "other", "payment_date": project.created_at},
        )
        project_service.add_progress_image(me, project.id, image_url="/uploads/image-abc.jpg")
        project_id = project.id

        resp = client.delete(f"/api/projects/{project_id}", headers=client_headers)
        assert resp.status_code == 204

        db_session.expire_all()
        assert db_session.get(Project, project_id) is None
        for model in (Milestone, ProjectInventory, ProjectExpense, ProgressImage):
            assert db_session.query(model).filter_by(project_id=project_id).count() == 0

    def test_other_client_cannot_delete(self, db_session, client_user_b, project):
        with pytest.raises(PermissionDeniedError):
            project_service.delete_project(principal_for(client_user_b), project.id)


# =============================================================================
# PROGRESS IMAGES
# =============================================================================


class TestImages:

    def test_upload(self, client, db_session, client_user, project, client_headers):
        milestone = _milestone(client_user, project, "Foundation")
        resp = client.post(
            f"/api/projects/{project.id}/images",
            data={
                "image": (io.BytesIO(b"jpeg bytes"), "site.jpg"),
                "milestoneId": milestone.id,
                "description": "Footings poured",
            },
            headers=client_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        body = resp.json
        assert body["milestone_id"] == milestone.id
        assert body["uploaded_by"] == client_user.id

        path = file_storage_service.resolve_path(body["image_url"])
        with open(path, "rb") as fh:
            assert fh.read() == b"jpeg bytes"

        listed = client.get(f"/api/projects/{project.id}/images", headers=client_headers)
        assert [i["id"] for i in listed.json] == [body["id"]]

    def test_file_required(self, client, db_session, project, client_headers):
        resp = client.post(
            f"/api/projects/{project.id}/images",
            data={"description": "No file"},
            headers=client_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400

    def test_milestone_must_belong_to_project(self, db_session, client_user, project):
        me = principal_for(client_user)
        other = project_service.create_project(me, patch={"name": "Other"})
        foreign = _milestone(client_user, other, "Elsewhere")
        with pytest.raises(ValidationError):
            project_service.add_progress_image(me, project.id, image_url="/uploads/x.jpg", milestone_id=foreign.id)

    def test_rejected_upload_leaves_no_file(self, app, client, db_session, client_user, project, client_headers):
        other = project_service.create_project(principal_for(client_user), patch={"name": "Other"})
        foreign = _milestone(client_user, other, "Elsewhere")
        before = set(os.listdir(app.config["UPLOAD_FOLDER"]))

        resp = client.post(
            f"/api/projects/{project.id}/images",
            data={"image": (io.BytesIO(b"jpeg bytes"), "site.jpg"), "milestoneId": foreign.id},
            headers=client_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400
        assert set(os.listdir(app.config["UPLOAD_FOLDER"])) == before
        assert db_session.query(ProgressImage).count() == 0

    def test_other_client_upload_leaves_no_file(self, app, client, db_session, project, client_b_headers):
        before = set(os.listdir(app.config["UPLOAD_FOLDER"]))
        resp = client.post(
            f"/api/projects/{project.id}/images",
            data={"image": (io.BytesIO(b"jpeg bytes"), "site.jpg")},
            headers=client_b_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 403
        assert set(os.listdir(app.config["UPLOAD_FOLDER"])) == before
