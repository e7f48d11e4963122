"""
Contact form tests.

Verifies:
- Anyone can submit the form; required fields and the phone digit limit are enforced
- Only admins can list, read and delete submissions
"""

from datetime import datetime, timezone

import pytest

from app.models import ContactSubmission


def _form(**overrides):
    body = {
        'name': 'Sana Malik',
        'email': 'Sana@Example.com',
        'subject': 'Custom wall clock',
        'message': 'Can you make a 24 inch ocean clock?',
    }
    body.update(overrides)
    return body


@pytest.fixture(scope='function')
def make_submission(db_session):
    """Factory: make_submission(name=..., created_at=...)"""

    def _make(*, name='Visitor', subject='Question', created_at=None):
        submission = ContactSubmission(
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            subject=subject,
            message='Hello',
            created_at=created_at or datetime.now(timezone.utc),
        )
        db_session.add(submission)
        db_session.commit()
        return submission

    return _make


# =============================================================================
# PUBLIC SUBMISSION
# =============================================================================


class TestSubmit:

    def test_submit(self, client, db_session):
        resp = client.post('/api/contact/submit', json=_form(phone='+92 300 1234567'))

        assert resp.status_code == 201
        assert resp.json['message'] == "Thank you for contacting us! We will get back to you soon."
        data = resp.json['data']
        assert data['email'] == 'sana@example.com'
        assert data['phone'] == '+92 300 1234567'
        assert data['inquiryType'] == 'General Inquiry'
        assert db_session.query(ContactSubmission).count() == 1

    def test_inquiry_type_kept(self, client, db_session):
        resp = client.post('/api/contact/submit', json=_form(inquiryType='Custom Order'))
        assert resp.json['data']['inquiryType'] == 'Custom Order'
        assert resp.json['data']['phone'] is None

    @pytest.mark.parametrize("missing", ['name', 'email', 'subject', 'message'])
    def test_required_fields(self, client, db_session, missing):
        resp = client.post('/api/contact/submit', json=_form(**{missing: ''}))

        assert resp.status_code == 400
        assert resp.json['message'] == "Please provide all required fields: name, email, subject, message"
        assert db_session.query(ContactSubmission).count() == 0

    def test_phone_over_thirteen_digits(self, client, db_session):
        resp = client.post('/api/contact/submit', json=_form(phone='+92-300-123-456789'))

        assert resp.status_code == 400
        assert resp.json['message'] == "Phone number can contain a maximum of 13 digits"
        assert db_session.query(ContactSubmission).count() == 0

    def test_phone_formatting_not_counted(self, client, db_session):
        resp = client.post('/api/contact/submit', json=_form(phone='+92 (300) 123-45678'))
        assert resp.status_code == 201

    def test_invalid_email(self, client, db_session):
        resp = client.post('/api/contact/submit', json=_form(email='not-an-email'))
        assert resp.status_code == 400

    def test_no_token_needed(self, client, db_session, customer_headers):
        assert client.post('/api/contact/submit', json=_form()).status_code == 201
        assert client.post('/api/contact/submit', json=_form(), headers=customer_headers).status_code == 201


# =============================================================================
# ADMIN REVIEW
# =============================================================================


class TestAdminReview:

    def test_list_newest_first(self, client, admin_headers, make_submission):
        make_submission(name='Older', created_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
        make_submission(name='Newer', created_at=datetime(2026, 3, 1, tzinfo=timezone.utc))

        resp = client.get('/api/contact', headers=admin_headers)

        assert resp.status_code == 200
        assert [c['name'] for c in resp.json['data']] == ['Newer', 'Older']
        assert resp.json['pagination']['itemsPerPage'] == 10

    def test_pagination_and_sort(self, client, admin_headers, make_submission):
        for name in ['Charlie', 'Alpha', 'Bravo']:
            make_submission(name=name)

        resp = client.get('/api/contact?sortBy=name&sortOrder=asc&page=2&limit=2', headers=admin_headers)

        assert [c['name'] for c in resp.json['data']] == ['Charlie']
        assert resp.json['pagination']['totalItems'] == 3
        assert resp.json['pagination']['totalPages'] == 2

    def test_get_one(self, client, admin_headers, make_submission):
        submission = make_submission(subject='Bulk coasters')

        resp = client.get(f'/api/contact/{submission.id}', headers=admin_headers)

        assert resp.json['data']['subject'] == 'Bulk coasters'

    def test_get_missing(self, client, admin_headers):
        resp = client.get('/api/contact/999', headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json['message'] == "Contact submission not found"

    def test_delete(self, client, db_session, admin_headers, make_submission):
        submission = make_submission()
        submission_id = submission.id

        resp = client.delete(f'/api/contact/{submission_id}', headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json['message'] == "Contact submission deleted successfully"
        assert resp.json['data']['id'] == submission_id
        assert db_session.get(ContactSubmission, submission_id) is None
        assert client.delete(f'/api/contact/{submission_id}', headers=admin_headers).status_code == 404

    def test_customer_forbidden(self, client, customer_headers, make_submission):
        submission = make_submission()
        assert client.get('/api/contact', headers=customer_headers).status_code == 403
        assert client.delete(f'/api/contact/{submission.id}', headers=customer_headers).status_code == 403
