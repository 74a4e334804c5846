"""
API tests for note writes, sharing and job status.
"""

import pytest

from cnote.common.constants import StatusCodes, TaskTypes
from cnote.main import app
from cnote.models import Note, NoteShare
from cnote.models.task_job_model import TaskJob

from helpers import FakeArqPool


@pytest.fixture
def alice(make_user):
    return make_user("alice")


class TestNoteWrites:
    def test_create_queues_reindex_job(self, client, db, alice, auth_headers):
        # Act
        response = client.post(
            "/notes",
            json={"title": "Groceries", "content": "Buy milk"},
            headers=auth_headers(alice),
        )

        # Assert
        body = response.json()
        assert response.status_code == 201
        assert body["data"]["note"]["title"] == "Groceries"
        job_id = body["data"]["reindex_job_id"]
        queued = app.state.arq_pool.jobs[0]
        assert queued["function"] == "handle_reindex_note"
        assert queued["args"] == (job_id,)
        assert queued["kwargs"]["note_id"] == body["data"]["note"]["id"]
        job = db.query(TaskJob).filter(TaskJob.id == job_id).one()
        assert job.status == StatusCodes.JOB_QUEUED
        assert job.task_type == TaskTypes.REINDEX_NOTE

    def test_queue_failure_does_not_fail_write(self, client, db, alice, auth_headers):
        app.state.arq_pool = FakeArqPool(error=ConnectionError("redis down"))

        response = client.post("/notes", json={"title": "Offline"}, headers=auth_headers(alice))

        assert response.status_code == 201
        assert response.json()["data"]["reindex_job_id"] is None
        assert db.query(Note).filter(Note.title == "Offline").count() == 1

    def test_update_queues_another_job(self, client, alice, make_note, auth_headers):
        note = make_note(alice, "Draft", "v1")

        response = client.put(f"/notes/{note.id}", json={"content": "v2"}, headers=auth_headers(alice))

        body = response.json()
        assert response.status_code == 200
        assert body["data"]["note"]["content"] == "v2"
        assert body["data"]["note"]["title"] == "Draft"
        assert len(app.state.arq_pool.jobs) == 1

    def test_update_other_users_note_is_404(self, client, alice, make_user, make_note, auth_headers):
        note = make_note(make_user("bob"), "Bob's", "")

        response = client.put(f"/notes/{note.id}", json={"content": "mine now"}, headers=auth_headers(alice))

        assert response.status_code == 404
        assert app.state.arq_pool.jobs == []

    def test_empty_title_is_400(self, client, alice, auth_headers):
        response = client.post("/notes", json={"title": ""}, headers=auth_headers(alice))

        assert response.status_code == 400
        assert response.json()["data"]["field"] == "title"

    def test_delete_removes_note_and_chunks(self, client, db, alice, make_note, add_chunk, auth_headers):
        note = make_note(alice, "Temp", "x")
        add_chunk(note, "Temp x", (1.0,))

        response = client.delete(f"/notes/{note.id}", headers=auth_headers(alice))

        db.expire_all()
        assert response.status_code == 200
        assert db.query(Note).count() == 0


class TestShares:
    def test_share_and_revoke(self, client, db, alice, make_user, make_note, auth_headers):
        # Arrange
        make_user("bob")
        note = make_note(alice, "Plan", "")

        # Act
        created = client.post(
            "/shares",
            json={"note_id": note.id, "shared_with_username": "bob"},
            headers=auth_headers(alice),
        )
        share_id = created.json()["data"]["id"]
        revoked = client.delete(f"/shares/{share_id}", headers=auth_headers(alice))

        # Assert
        assert created.status_code == 201
        assert revoked.status_code == 200
        db.expire_all()
        assert db.query(NoteShare).count() == 0
        assert db.get(Note, note.id).is_shared is False

    def test_cannot_share_with_self(self, client, alice, make_note, auth_headers):
        note = make_note(alice, "Plan", "")

        response = client.post(
            "/shares",
            json={"note_id": note.id, "shared_with_username": "alice"},
            headers=auth_headers(alice),
        )

        assert response.status_code == 400

    def test_unknown_permission_is_400(self, client, alice, make_user, make_note, auth_headers):
        make_user("bob")
        note = make_note(alice, "Plan", "")

        response = client.post(
            "/shares",
            json={"note_id": note.id, "shared_with_username": "bob", "permission": "admin"},
            headers=auth_headers(alice),
        )

        assert response.status_code == 400
        assert response.json()["data"]["field"] == "permission"


class TestTaskStatus:
    def test_reports_job_for_owner_only(self, client, db, alice, make_user, auth_headers):
        db.add(TaskJob(
            id="job-1",
            task_type=TaskTypes.REINDEX_NOTE,
            status=StatusCodes.JOB_COMPLETED,
            user_id=alice.id,
            note_id=7,
            result='{"note_id": 7, "chunks": 2}',
            attempts=1,
        ))
        db.commit()

        own = client.get("/tasks/status/job-1", headers=auth_headers(alice))
        other = client.get("/tasks/status/job-1", headers=auth_headers(make_user("bob")))

        assert own.status_code == 200
        assert own.json()["data"]["result"] == {"note_id": 7, "chunks": 2}
        assert other.status_code == 404
