"""
Tests for GroupService: creating and joining groups, member management and
settings.
"""
from decimal import Decimal

import pytest

from extensions import db
from models.groups import IkiminaGroup, GroupMember
from services.group_service import GroupService
from utils.errors import ValidationError, InvalidStateError


# ---------------------------------------------------------------------------
# Onboarding
# ---------------------------------------------------------------------------

class TestCreateGroup:
    def test_starter_group_is_active_with_creator_as_admin(self, make_user):
        user = make_user('founder@example.com')
        group = GroupService.create_group(user, 'Twiteze Imbere', contribution_amount='5000')

        assert group.status == IkiminaGroup.STATUS_ACTIVE
        assert group.interest_rate == Decimal('5.00')
        membership = user.get_group_membership()
        assert membership.group_id == group.id
        assert membership.is_admin is True

    def test_growth_group_waits_for_approval(self, make_user):
        user = make_user('founder@example.com')
        group = GroupService.create_group(user, 'Big Group', plan=IkiminaGroup.PLAN_GROWTH)
        assert group.status == IkiminaGroup.STATUS_PENDING_APPROVAL

    def test_name_required(self, make_user):
        user = make_user('founder@example.com')
        with pytest.raises(ValidationError):
            GroupService.create_group(user, '   ')
        assert IkiminaGroup.query.count() == 0

    def test_user_with_active_group_cannot_create_another(self, group, member_user):
        with pytest.raises(InvalidStateError):
            GroupService.create_group(member_user, 'Second')

    def test_group_code_is_first_eight_of_public_id(self, group):
        assert group.group_code == group.public_id[:8].upper()
        assert len(group.group_code) == 8


class TestJoinGroup:
    def test_join_by_code_case_insensitive(self, group, make_user):
        newcomer = make_user('new@example.com')
        membership = GroupService.join_group(newcomer, group.group_code.lower())
        assert membership.group_id == group.id
        assert membership.is_admin is False
        assert membership.status == GroupMember.STATUS_ACTIVE

    def test_unknown_code(self, group, make_user):
        newcomer = make_user('new@example.com')
        with pytest.raises(ValidationError):
            GroupService.join_group(newcomer, 'ZZZZZZZZ')

    @pytest.mark.parametrize('code', ['________', '%%%%%%%%', '%', '_', '', None, 'ABC', 'GGGGGGGG'])
    def test_wildcard_and_malformed_codes_match_nothing(self, group, make_user, code):
        outsider = make_user('outsider@example.com')
        with pytest.raises(ValidationError) as exc:
            GroupService.join_group(outsider, code)
        assert exc.value.field == 'group_code'
        assert outsider.get_group_membership() is None

    def test_code_must_match_exactly(self, group, make_user):
        outsider = make_user('outsider@example.com')
        # Same length, one character off
        last = group.group_code[-1]
        wrong = group.group_code[:-1] + ('0' if last != '0' else '1')
        with pytest.raises(ValidationError):
            GroupService.join_group(outsider, wrong)
        # Longer input is not truncated to a prefix
        with pytest.raises(ValidationError):
            GroupService.join_group(outsider, group.group_code + 'FF')
        assert GroupMember.query.filter_by(user_id=outsider.id).count() == 0

    @pytest.mark.parametrize('status', [IkiminaGroup.STATUS_DISABLED, IkiminaGroup.STATUS_PENDING_APPROVAL])
    def test_cannot_join_inactive_group(self, group, make_user, status):
        group.status = status
        db.session.commit()
        newcomer = make_user('new@example.com')
        with pytest.raises(InvalidStateError) as exc:
            GroupService.join_group(newcomer, group.group_code)
        assert 'not accepting members' in exc.value.message
        assert newcomer.get_group_membership() is None

    def test_already_a_member(self, group, member_user):
        with pytest.raises(InvalidStateError) as exc:
            GroupService.join_group(member_user, group.group_code)
        assert 'already a member' in exc.value.message


class TestMembership:
    def test_remove_then_rejoin(self, group, admin_user, member_user, member):
        GroupService.remove_member(member, admin_user)
        assert member.status == GroupMember.STATUS_REMOVED
        assert member_user.get_group_membership() is None
        assert GroupService.previous_groups(member_user)[0]['group_id'] == group.id

        GroupService.request_rejoin(member_user, group.id)
        assert member.status == GroupMember.STATUS_PENDING_REJOIN

        GroupService.approve_rejoin(member, admin_user)
        assert member.status == GroupMember.STATUS_ACTIVE

    def test_removed_member_cannot_join_by_code(self, group, admin_user, member_user, member):
        GroupService.remove_member(member, admin_user)
        with pytest.raises(InvalidStateError):
            GroupService.join_group(member_user, group.group_code)

    def test_rejoin_requires_removed_status(self, group, member_user):
        with pytest.raises(InvalidStateError):
            GroupService.request_rejoin(member_user, group.id)

    def test_admin_cannot_remove_or_demote_self(self, admin_user, admin_member):
        with pytest.raises(InvalidStateError):
            GroupService.remove_member(admin_member, admin_user)
        with pytest.raises(InvalidStateError):
            GroupService.toggle_admin(admin_member, admin_user)

    def test_toggle_admin(self, admin_user, member):
        GroupService.toggle_admin(member, admin_user)
        assert member.is_admin is True
        GroupService.toggle_admin(member, admin_user)
        assert member.is_admin is False

    def test_list_members(self, group, admin_user, member):
        GroupService.remove_member(member, admin_user)
        assert len(GroupService.list_members(group.id)) == 2
        assert [m['full_name'] for m in GroupService.list_members(group.id, status='active')] == ['Alice Admin']
        assert len(GroupService.list_members(group.id, search='bob')) == 1


class TestSettings:
    def test_update_settings(self, group, admin_user):
        GroupService.update_settings(group, admin_user, name='Renamed', interest_rate='7.5',
                                     contribution_amount='12000', contribution_frequency='weekly',
                                     constitution='Meet every Saturday.')
        db.session.refresh(group)
        assert group.name == 'Renamed'
        assert group.interest_rate == Decimal('7.50')
        assert group.contribution_amount == Decimal('12000.00')
        assert group.contribution_frequency == 'weekly'
        assert group.constitution == 'Meet every Saturday.'

    def test_rejects_unknown_frequency(self, group, admin_user):
        with pytest.raises(ValidationError):
            GroupService.update_settings(group, admin_user, contribution_frequency='hourly')

    def test_rejects_zero_interest(self, group, admin_user):
        with pytest.raises(ValidationError):
            GroupService.update_settings(group, admin_user, interest_rate='0')

    @pytest.mark.parametrize('rate', ['5.555', '1000'])
    def test_rejects_rates_the_column_cannot_hold(self, group, admin_user, rate):
        with pytest.raises(ValidationError) as exc:
            GroupService.update_settings(group, admin_user, interest_rate=rate)
        assert exc.value.field == 'interest_rate'
        db.session.refresh(group)
        assert group.interest_rate == Decimal('5.00')
