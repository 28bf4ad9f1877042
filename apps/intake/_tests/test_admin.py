import pytest

from apps.intake.models import IntakeRecord, RecordStatus


@pytest.fixture
def exhausted_record(db):
    return IntakeRecord.objects.create(
        contact_email="owner@harbor.test",
        business_payload={"business_name": "Harbor Bakery"},
        attempts=5,
        last_error_stage="synthesize_content",
    )


@pytest.mark.django_db
class TestIntakeRecordAdmin:
    def test_changelist_loads(self, admin_client, exhausted_record):
        response = admin_client.get("/admin/intake/intakerecord/")
        assert response.status_code == 200
        assert "Harbor Bakery" in response.content.decode()

    def test_change_page_loads(self, admin_client, exhausted_record):
        response = admin_client.get(f"/admin/intake/intakerecord/{exhausted_record.pk}/change/")
        assert response.status_code == 200

    def test_requeue_bulk_action(self, admin_client, exhausted_record):
        generated = IntakeRecord.objects.create(
            contact_email="done@harbor.test",
            business_payload={"business_name": "Done"},
            status=RecordStatus.GENERATED,
            attempts=1,
        )

        response = admin_client.post(
            "/admin/intake/intakerecord/",
            {
                "action": "requeue_selected",
                "_selected_action": [str(exhausted_record.pk), str(generated.pk)],
            },
        )

        assert response.status_code == 302
        exhausted_record.refresh_from_db()
        generated.refresh_from_db()
        assert exhausted_record.attempts == 0
        assert generated.status == RecordStatus.GENERATED
        assert generated.attempts == 1

    def test_requeue_object_action(self, admin_client, exhausted_record):
        response = admin_client.post(
            f"/admin/intake/intakerecord/{exhausted_record.pk}/actions/requeue/"
        )

        assert response.status_code == 302
        exhausted_record.refresh_from_db()
        assert exhausted_record.attempts == 0
        assert exhausted_record.status == RecordStatus.PENDING
