"""
Tests for sp_resource.core.merge — building the update candidate.
"""
from sp_resource.core.merge import MERGE_ACTIVE_NOT_SUPPORTED, merge_profiles
from sp_resource.core.model import SecurityProfile, SpProperty
from sp_resource.policy.verdict import is_same

from conftest import BASELINE, BLACK, BLUE

EMPTY = SecurityProfile()


class TestMergeProfiles:

    def test_active_only_update_zeroes_credid(self, policy):
        stored = SecurityProfile((BASELINE, BLACK), BLACK, 5)
        incoming = SecurityProfile(active_profile=BASELINE)
        result = merge_profiles(stored, incoming, SpProperty.ACTIVE_PROFILE, policy)
        assert result.ok
        assert result.candidate == SecurityProfile((BASELINE, BLACK), BASELINE, 0)
        assert is_same(result.candidate, stored, SpProperty.SUPPORTED_PROFILES)
        assert result.present == SpProperty.ALL

    def test_empty_update_keeps_stored(self, policy, black_profile):
        result = merge_profiles(black_profile, EMPTY, SpProperty.NONE, policy)
        assert result.ok
        assert result.candidate == black_profile
        assert result.present == SpProperty.ALL

    def test_incoming_credid_wins(self, policy, black_profile):
        incoming = SecurityProfile(credid=11)
        result = merge_profiles(black_profile, incoming, SpProperty.CRED_ID, policy)
        assert result.candidate.credid == 11

    def test_stored_credid_carried_between_credential_profiles(self, policy):
        stored = SecurityProfile((BASELINE, BLACK, BLUE), BLACK, 5)
        incoming = SecurityProfile(active_profile=BLUE)
        result = merge_profiles(stored, incoming, SpProperty.ACTIVE_PROFILE, policy)
        assert result.candidate == SecurityProfile((BASELINE, BLACK, BLUE), BLUE, 5)
        assert result.present.cred_id

    def test_switch_to_credential_profile_without_credid(self, policy, baseline_profile):
        incoming = SecurityProfile((BASELINE, BLACK), BLACK)
        present = SpProperty.SUPPORTED_PROFILES | SpProperty.ACTIVE_PROFILE
        result = merge_profiles(baseline_profile, incoming, present, policy)
        assert result.ok
        assert result.candidate.credid == 0
        assert not result.present.cred_id

    def test_incoming_credid_ignored_for_plain_profile(self, policy, baseline_profile):
        incoming = SecurityProfile(credid=9)
        result = merge_profiles(baseline_profile, incoming, SpProperty.CRED_ID, policy)
        assert result.candidate.credid == 0

    def test_new_list_must_contain_stored_active(self, policy, black_profile):
        incoming = SecurityProfile(supported_profiles=(BASELINE,))
        result = merge_profiles(black_profile, incoming, SpProperty.SUPPORTED_PROFILES, policy)
        assert not result.ok
        assert result.reasons == [MERGE_ACTIVE_NOT_SUPPORTED]

    def test_active_not_supported(self, policy, baseline_profile):
        incoming = SecurityProfile(active_profile=BLUE)
        result = merge_profiles(baseline_profile, incoming, SpProperty.ACTIVE_PROFILE, policy)
        assert result.reasons == [MERGE_ACTIVE_NOT_SUPPORTED]

    def test_inputs_untouched(self, policy, black_profile):
        incoming = SecurityProfile((BLACK,), BLACK, 2)
        before = black_profile.dup()
        merge_profiles(black_profile, incoming, SpProperty.ALL, policy)
        assert black_profile == before
