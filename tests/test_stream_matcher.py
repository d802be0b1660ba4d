"""Tests for launch identity rules and the stream matcher."""

from datetime import timedelta

import pytest
from conftest import NOW, FakeSearchSource, make_candidate, make_launch

from launchwindow.consumers.stream_matcher import (
    DEFAULT_CHANNELS,
    ChannelConfig,
    MissionClass,
    StreamMatcher,
    batch_pattern,
    build_query,
    extract_identity,
    is_candidate_match,
    load_channel_roster,
    score_candidate,
)
from launchwindow.core import QuotaExceededError, TransientSourceError

PLAIN = ChannelConfig("UC-plain", "Plain Channel")
STRICT = ChannelConfig("UC-strict", "Strict Channel", strict=True)
AGENCY = ChannelConfig("UC-agency", "Agency Channel", search_by_payload=True)


def make_matcher(source, channels=(PLAIN,), **kwargs) -> StreamMatcher:
    kwargs.setdefault("request_spacing", 0)
    return StreamMatcher(source, channels=channels, clock=lambda: NOW, **kwargs)


# =============================================================================
# IDENTITY
# =============================================================================


class TestExtractIdentity:
    def test_constellation_batch(self):
        identity = extract_identity("Falcon 9 Block 5 | Starlink Group 6-87")
        assert identity.vehicle == "Falcon 9"
        assert identity.mission_class is MissionClass.FREQUENT
        assert identity.batch == "6-87"
        assert identity.constellation == "starlink"

    def test_kuiper_batch(self):
        identity = extract_identity("Atlas V 551 | Project Kuiper (KA-01)")
        assert identity.vehicle == "Atlas V"
        assert identity.mission_class is MissionClass.FREQUENT
        assert identity.batch == "ka-01"

    def test_high_profile_with_flight(self):
        identity = extract_identity("Starship | Flight 7")
        assert identity.vehicle == "Starship"
        assert identity.mission_class is MissionClass.HIGH_PROFILE
        assert identity.flight_number == "7"

    def test_more_specific_rule_wins(self):
        """Falcon Heavy is checked before Falcon 9."""
        identity = extract_identity("Falcon Heavy | USSF-52")
        assert identity.vehicle == "Falcon Heavy"
        assert identity.mission_class is MissionClass.HIGH_PROFILE

    def test_regional_naming(self):
        identity = extract_identity("PSLV-DL | EOS-N1 and others")
        assert identity.vehicle == "PSLV"
        assert identity.variant == "PSLV-DL"
        assert identity.payload == "EOS-N1"
        assert identity.regional
        assert identity.mission_class is MissionClass.NAMED_PAYLOAD

    def test_captured_variant(self):
        identity = extract_identity("Long March 2C | Yaogan-45")
        assert identity.vehicle == "Long March 2C"
        assert identity.payload == "Yaogan-45"

    def test_named_payload(self):
        identity = extract_identity("Electron | Owl For You")
        assert identity.vehicle == "Electron"
        assert identity.mission_class is MissionClass.NAMED_PAYLOAD
        assert identity.payload == "Owl For You"

    def test_fallback_vehicle_is_text_before_separator(self):
        identity = extract_identity("Minotaur IV | NROL-174")
        assert identity.vehicle == "Minotaur IV"
        assert identity.payload == "NROL-174"

    def test_unknown_payload_is_unclassified(self):
        identity = extract_identity("Kinetica-1 | Unknown Payload")
        assert identity.mission_class is MissionClass.UNCLASSIFIED

    def test_constellation_without_batch_is_named_payload(self):
        identity = extract_identity("Falcon 9 Block 5 | Starlink Starshield")
        assert identity.mission_class is MissionClass.NAMED_PAYLOAD


class TestBatchPattern:
    @pytest.mark.parametrize("text", ["starlink group 6-87", "group 6 87 live", "(6-87)"])
    def test_matches(self, text):
        assert batch_pattern("6-87").search(text)

    @pytest.mark.parametrize("text", ["group 6-88", "group 16-87", "group 6-870"])
    def test_rejects(self, text):
        assert not batch_pattern("6-87").search(text)


# =============================================================================
# FILTER / SCORE
# =============================================================================


class TestCandidateFilter:
    def test_frequent_mission_requires_exact_batch(self):
        identity = extract_identity("Falcon 9 Block 5 | Starlink Group 6-87")
        wrong = make_candidate("v1", "Falcon 9 Launches Starlink Group 6-88")
        right = make_candidate("v2", "Falcon 9 Launches Starlink Group 6-87")
        assert not is_candidate_match(wrong, identity, PLAIN)
        assert is_candidate_match(right, identity, PLAIN)

    def test_frequent_mission_vehicle_only_rejected(self):
        identity = extract_identity("Falcon 9 Block 5 | Starlink Group 6-87")
        assert not is_candidate_match(make_candidate("v1", "Falcon 9 launch LIVE"), identity, PLAIN)

    def test_high_profile_is_wide(self):
        identity = extract_identity("Starship | Flight 7")
        assert is_candidate_match(make_candidate("v1", "Starship launch coverage"), identity, PLAIN)

    def test_strict_channel_needs_flight_number(self):
        identity = extract_identity("Starship | Flight 7")
        assert not is_candidate_match(make_candidate("v1", "Starship launch coverage"), identity, STRICT)
        assert is_candidate_match(make_candidate("v2", "Starship Flight 7 LIVE"), identity, STRICT)

    def test_named_payload_needs_both(self):
        identity = extract_identity("Electron | Owl For You")
        assert not is_candidate_match(make_candidate("v1", "Electron launch"), identity, PLAIN)
        assert is_candidate_match(make_candidate("v2", "Electron", "Rocket Lab launches Owl For You"), identity, PLAIN)

    def test_payload_channel_accepts_payload_alone(self):
        identity = extract_identity("PSLV-C60 | SpaDeX")
        assert is_candidate_match(make_candidate("v1", "SpaDeX Mission Live"), identity, AGENCY)
        assert build_query(identity, AGENCY) == "SpaDeX"


class TestQueries:
    def test_queries_by_class(self):
        assert build_query(extract_identity("Starship | Flight 7"), PLAIN) == "Starship"
        assert build_query(extract_identity("Falcon 9 Block 5 | Starlink Group 6-87"), PLAIN) == "Falcon 9 Starlink"
        assert build_query(extract_identity("Electron | Owl For You"), PLAIN) == "Electron Owl For You"


class TestScoring:
    def test_full_match_clamps_to_one(self):
        identity = extract_identity("Falcon 9 Block 5 | Starlink Group 6-87")
        candidate = make_candidate("v1", "LIVE: Falcon 9 launches Starlink Group 6-87")
        assert score_candidate(candidate, identity) == 1.0

    def test_vehicle_only(self):
        identity = extract_identity("Starship | Flight 7")
        assert score_candidate(make_candidate("v1", "Starship"), identity) == pytest.approx(0.3)

    def test_nothing_matches(self):
        identity = extract_identity("Starship | Flight 7")
        assert score_candidate(make_candidate("v1", "Weekly news"), identity) == 0.0


# =============================================================================
# MATCHER
# =============================================================================


class TestStreamMatcher:
    def test_batch_scenario(self):
        source = FakeSearchSource(
            default=[
                make_candidate("wrong", "Falcon 9 Starlink Group 6-88 Launch"),
                make_candidate("right", "Falcon 9 Starlink Group 6-87 Launch"),
            ]
        )
        run = make_matcher(source).match(make_launch())
        assert [s.video_id for s in run.streams] == ["right"]

    def test_deduplicates_across_channels(self):
        source = FakeSearchSource(
            default=[
                make_candidate("a", "Starship Flight 7 LIVE"),
                make_candidate("b", "Starship launch"),
                make_candidate("a", "Starship Flight 7 LIVE"),
            ]
        )
        launch = make_launch(name="Starship | Flight 7")
        run = make_matcher(source, channels=(PLAIN, ChannelConfig("UC-two", "Two"))).match(launch)

        ids = [s.video_id for s in run.streams]
        assert len(ids) == len(set(ids)) == 2
        assert run.duplicates_dropped == 4
        assert all(0.0 <= s.score <= 1.0 for s in run.streams)

    def test_ordering_by_score_then_start(self):
        early = NOW + timedelta(hours=1)
        late = NOW + timedelta(hours=2)
        source = FakeSearchSource(
            default=[
                make_candidate("late", "Starship", scheduled_start=late),
                make_candidate("best", "Starship Flight 7 launch live", scheduled_start=late),
                make_candidate("early", "Starship", scheduled_start=early),
            ]
        )
        run = make_matcher(source).match(make_launch(name="Starship | Flight 7"))
        assert [s.video_id for s in run.streams] == ["best", "early", "late"]

    def test_channel_failure_does_not_abort_others(self):
        source = FakeSearchSource(
            default=[make_candidate("ok", "Starship launch")],
            errors={"UC-plain": TransientSourceError("timeout")},
        )
        channels = (PLAIN, ChannelConfig("UC-two", "Two"))
        run = make_matcher(source, channels=channels).match(make_launch(name="Starship | Flight 7"))

        assert run.channels_failed == ["Plain Channel"]
        assert [s.video_id for s in run.streams] == ["ok"]
        assert not run.complete

    def test_quota_error_is_per_channel(self):
        source = FakeSearchSource(errors={"UC-plain": QuotaExceededError("quota")})
        run = make_matcher(source).match(make_launch(name="Starship | Flight 7"))
        assert run.channels_failed == ["Plain Channel"]
        assert run.streams == []

    def test_call_budget_skips_remaining_channels(self):
        channels = tuple(ChannelConfig(f"UC-{i}", f"Channel {i}") for i in range(5))
        source = FakeSearchSource()
        run = make_matcher(source, channels=channels, call_budget=2).match(make_launch())

        assert len(source.calls) == 2
        assert run.calls_made == 2
        assert run.channels_skipped == ["Channel 2", "Channel 3", "Channel 4"]

    def test_unconfigured_source_skips_search(self):
        source = FakeSearchSource(configured=False)
        run = make_matcher(source).match(make_launch())
        assert run.skipped_reason == "search_not_configured"
        assert source.calls == []

    def test_associations_carry_launch_and_timestamp(self):
        source = FakeSearchSource(default=[make_candidate("v1", "Starship launch")])
        run = make_matcher(source).match(make_launch(launch_id="ll-9", name="Starship | Flight 7"))
        stream = run.streams[0]
        assert stream.launch_id == "ll-9"
        assert stream.created_at == NOW
        assert stream.url == "https://www.youtube.com/watch?v=v1"


# =============================================================================
# ROSTER
# =============================================================================


class TestChannelRoster:
    def test_default_when_unset(self):
        assert load_channel_roster(None) == DEFAULT_CHANNELS

    def test_missing_file_falls_back(self, tmp_path):
        assert load_channel_roster(tmp_path / "nope.json") == DEFAULT_CHANNELS

    def test_loads_json(self, tmp_path):
        path = tmp_path / "roster.json"
        path.write_text(
            '[{"channel_id": "UC1", "name": "One", "strict": true},'
            ' {"channel_id": "UC1", "name": "Dup"},'
            ' {"channel_id": "UC2", "name": "Two", "search_by_payload": true}]'
        )
        roster = load_channel_roster(path)
        assert [c.channel_id for c in roster] == ["UC1", "UC2"]
        assert roster[0].strict
        assert roster[1].search_by_payload

    @pytest.mark.parametrize("content", ["not json", '{"channel_id": "UC1"}', '[{"name": "no id"}]'])
    def test_invalid_roster(self, tmp_path, content):
        path = tmp_path / "roster.json"
        path.write_text(content)
        with pytest.raises(ValueError):
            load_channel_roster(path)
