"""
HTTP-level tests: authentication, role gates and the main JSON endpoints.
"""
from datetime import date

import pytest

from extensions import db
from models.groups import IkiminaGroup
from models.loans import Loan


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class TestAuth:
    def test_unauthenticated_requests_get_json_401(self, app):
        response = app.test_client().get('/loans/')
        assert response.status_code == 401
        assert response.get_json()['success'] is False

    def test_register_then_me(self, app):
        client = app.test_client()
        response = client.post('/auth/register', json={
            'full_name': 'Claire Uwase',
            'email': 'Claire@Example.com',
            'phone': '+250788000000',
            'password': 'Str0ng!Pass',
            'confirm_password': 'Str0ng!Pass',
        })
        assert response.status_code == 201, response.get_json()

        me = client.get('/auth/me').get_json()
        assert me['user']['email'] == 'claire@example.com'
        assert me['roles'] == []
        assert me['primary_role'] is None

    def test_register_rejects_weak_password(self, app):
        response = app.test_client().post('/auth/register', json={
            'full_name': 'Weak Password',
            'email': 'weak@example.com',
            'password': 'password',
            'confirm_password': 'password',
        })
        assert response.status_code == 400
        assert response.get_json()['field'] == 'password'

    def test_wrong_password_counts_attempts(self, app, admin_user):
        response = app.test_client().post('/auth/login', json={
            'email': admin_user.email, 'password': 'nope',
        })
        assert response.status_code == 401
        assert '4 attempts remaining' in response.get_json()['error']

    def test_security_headers_present(self, app):
        response = app.test_client().get('/auth/me')
        assert response.headers['X-Content-Type-Options'] == 'nosniff'


# ---------------------------------------------------------------------------
# Role gates
# ---------------------------------------------------------------------------

class TestPermissions:
    def test_member_cannot_issue_loans(self, login, group, member):
        response = login(member.user).post('/loans/', json={'borrower_id': member.id, 'principal_amount': '100'})
        assert response.status_code == 403

    def test_member_cannot_view_reports(self, login, group, member_user):
        assert login(member_user).get('/reports/').status_code == 403

    def test_user_without_group_is_refused_group_screens(self, login, make_user):
        loner = make_user('loner@example.com')
        response = login(loner).get('/contributions/')
        assert response.status_code == 403
        assert response.get_json()['error'] == 'not_a_member'

    def test_disabled_group_is_refused(self, login, group, admin_user):
        group.status = IkiminaGroup.STATUS_DISABLED
        db.session.commit()
        response = login(admin_user).get('/loans/')
        assert response.status_code == 403
        assert response.get_json()['error'] == 'group_disabled'

    def test_group_admin_cannot_open_super_admin_console(self, login, group, admin_user):
        assert login(admin_user).get('/super-admin/').status_code == 403

    def test_records_of_other_groups_are_404(self, login, group, admin_user, make_user):
        from services.group_service import GroupService
        outsider = make_user('outsider@example.com')
        GroupService.create_group(outsider, 'Elsewhere')
        foreign_member = outsider.get_group_membership()

        response = login(admin_user).post(f'/members/{foreign_member.id}/remove')
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Loans over HTTP
# ---------------------------------------------------------------------------

class TestLoanRoutes:
    def test_funds_gate_and_repayment(self, login, group, admin_user, member, add_paid_contribution):
        add_paid_contribution(group, member, 50000)
        client = login(admin_user)
        payload = {
            'borrower_id': member.id,
            'principal_amount': '100000',
            'interest_rate': '5',
            'duration_months': '6',
            'start_date': '2024-01-01',
            'approve': True,
        }

        rejected = client.post('/loans/', json=payload)
        assert rejected.status_code == 400
        body = rejected.get_json()
        assert body['field'] == 'principal_amount'
        assert body['available'] == 50000.0
        assert Loan.query.count() == 0

        add_paid_contribution(group, member, 60000)
        created = client.post('/loans/', json=payload)
        assert created.status_code == 201
        loan = created.get_json()['loan']
        assert loan['total_payable'] == 102500.0
        assert loan['due_date'] == '2024-07-01'

        repaid = client.post(f"/loans/{loan['id']}/repayments", json={'amount': '102500'})
        assert repaid.status_code == 201
        assert repaid.get_json()['loan']['status'] == 'completed'

    def test_bad_date_is_a_validation_error(self, login, group, admin_user, member):
        response = login(admin_user).post('/loans/', json={
            'borrower_id': member.id, 'principal_amount': '100', 'start_date': '01/02/2024',
        })
        assert response.status_code == 400
        assert response.get_json()['field'] == 'start_date'

    def test_approve_twice_is_a_conflict(self, login, group, admin_user, member, add_paid_contribution):
        add_paid_contribution(group, member, 50000)
        client = login(admin_user)
        loan_id = client.post('/loans/', json={'borrower_id': member.id, 'principal_amount': '1000'}) \
            .get_json()['loan']['id']

        assert client.post(f'/loans/{loan_id}/approve').status_code == 200
        assert client.post(f'/loans/{loan_id}/approve').status_code == 409

    def test_members_see_only_their_own_loans(self, login, group, admin_user, admin_member, member,
                                              add_paid_contribution):
        from services.loan_service import LoanService
        add_paid_contribution(group, member, 50000)
        LoanService.create_loan(group, admin_user, member.id, 1000, approve=True)
        other = LoanService.create_loan(group, admin_user, admin_member.id, 2000, approve=True)

        client = login(member.user)
        loans = client.get('/loans/').get_json()['loans']
        assert [l['principal_amount'] for l in loans] == [1000.0]
        assert client.get(f'/loans/{other.id}').status_code == 404


# ---------------------------------------------------------------------------
# Dashboards, reports, announcements
# ---------------------------------------------------------------------------

class TestDashboards:
    def test_admin_dashboard(self, login, group, admin_user, member, add_paid_contribution):
        add_paid_contribution(group, member, 25000)
        data = login(admin_user).get('/').get_json()
        assert data['role'] == 'group_admin'
        assert data['stats']['total_savings'] == 25000.0
        assert data['stats']['active_members'] == 2
        assert len(data['recent_contributions']) == 1

    def test_member_dashboard(self, login, group, member_user, member, add_paid_contribution):
        add_paid_contribution(group, member, 25000)
        data = login(member_user).get('/dashboard').get_json()
        assert data['role'] == 'member'
        assert data['stats']['total_contributed'] == 25000.0

    def test_super_admin_dashboard(self, login, group, super_admin_user):
        data = login(super_admin_user).get('/').get_json()
        assert data['role'] == 'super_admin'
        assert data['total_groups'] == 1


class TestReportRoutes:
    def test_csv_download(self, login, group, admin_user):
        response = login(admin_user).get('/reports/export?period=3months')
        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        assert f'ekimina-report-{date.today().isoformat()}.csv' in response.headers['Content-Disposition']
        assert response.get_data(as_text=True).startswith('eKimina Financial Report')

    def test_unknown_period(self, login, group, admin_user):
        assert login(admin_user).get('/reports/?period=decade').status_code == 400


class TestAnnouncementRoutes:
    def test_post_and_comment(self, login, group, admin_user, member_user):
        created = login(admin_user).post('/announcements/', json={'title': 'Meeting', 'content': 'Saturday 9am'})
        assert created.status_code == 201
        announcement_id = created.get_json()['announcement']['id']

        member_client = login(member_user)
        assert member_client.post('/announcements/', json={'title': 'x', 'content': 'y'}).status_code == 403
        commented = member_client.post(f'/announcements/{announcement_id}/comments', json={'content': 'See you'})
        assert commented.status_code == 201

        detail = member_client.get(f'/announcements/{announcement_id}').get_json()['announcement']
        assert [c['content'] for c in detail['comments']] == ['See you']


class TestSuperAdminRoutes:
    def test_approve_growth_group(self, login, make_user, super_admin_user):
        from services.group_service import GroupService
        founder = make_user('founder@example.com')
        pending = GroupService.create_group(founder, 'Growth Co', plan=IkiminaGroup.PLAN_GROWTH)

        client = login(super_admin_user)
        listed = client.get('/super-admin/groups?status=pending_approval').get_json()
        assert [g['name'] for g in listed['groups']] == ['Growth Co']

        response = client.post(f'/super-admin/groups/{pending.id}/approve')
        assert response.status_code == 200
        db.session.refresh(pending)
        assert pending.status == IkiminaGroup.STATUS_ACTIVE
        assert pending.payment_confirmed_by == super_admin_user.id

    def test_toggle_and_delete(self, login, group, super_admin_user):
        client = login(super_admin_user)
        assert client.post(f'/super-admin/groups/{group.id}/toggle').get_json()['group']['status'] == 'disabled'
        assert client.post(f'/super-admin/groups/{group.id}/delete').status_code == 200
        assert IkiminaGroup.query.count() == 0

    @pytest.mark.parametrize('audience, admin_sees, member_sees', [
        ('all', True, True),
        ('admins', True, False),
        ('members', False, True),
    ])
    def test_system_notice_audience(self, login, group, admin_user, member_user, super_admin_user,
                                    audience, admin_sees, member_sees):
        posted = login(super_admin_user).post('/super-admin/notices', json={
            'title': 'Maintenance', 'content': 'Down on Sunday', 'audience': audience,
        })
        assert posted.status_code == 201

        def sees(user):
            return bool(login(user).get('/announcements/system').get_json()['notices'])

        assert sees(admin_user) is admin_sees
        assert sees(member_user) is member_sees
