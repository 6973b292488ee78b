"""
Tests for temporal alignment module.
"""

import pytest

from touchsync.alignment.clock import ClockState, MasterClock
from touchsync.alignment.estimation import (
    OffsetEstimator,
    match_names,
    names_overlap,
    normalize_name,
)
from touchsync.alignment.sync_range import SyncRange, compute_sync_range
from touchsync.errors import UnsyncedTrackError
from touchsync.models.track import Track


def make_track(handle_cls, name, offset, duration=100.0, frame_rate=25):
    return Track(
        display_name=name,
        duration=duration,
        frame_rate=frame_rate,
        sync_offset=offset,
        handle=handle_cls(duration=duration, name=name),
    )


class TestSyncRange:
    """Tests for shared range computation."""

    def test_range_from_offsets(self):
        """Test range is the overlap of all streams."""
        tracks = [
            Track(display_name="A", duration=10.0, sync_offset=1.5),
            Track(display_name="B", duration=8.0, sync_offset=-0.2),
        ]

        sync_range = compute_sync_range(tracks)

        assert sync_range.master_min == pytest.approx(0.2)
        assert sync_range.master_max == pytest.approx(8.2)
        assert not sync_range.degenerate
        assert sync_range.warning is None

    def test_single_track(self):
        """Test a single stream spans its own media."""
        tracks = [Track(display_name="A", duration=30.0, sync_offset=4.0)]

        sync_range = compute_sync_range(tracks)

        assert sync_range.master_min == -4.0
        assert sync_range.master_max == 26.0

    def test_degenerate_range(self):
        """Test non-overlapping streams reset the start to 0."""
        tracks = [
            Track(display_name="A", duration=5.0, sync_offset=0.0),
            Track(display_name="B", duration=3.0, sync_offset=-10.0),
        ]

        sync_range = compute_sync_range(tracks)

        assert sync_range.degenerate
        assert sync_range.master_min == 0.0
        assert sync_range.master_max == 5.0
        assert sync_range.warning is not None

    def test_no_tracks(self):
        """Test the default range without streams."""
        assert compute_sync_range([]) == SyncRange(0.0, 60.0)
        assert compute_sync_range([], default=SyncRange(0.0, 5.0)).master_max == 5.0

    def test_unsynced_track(self):
        """Test range requires resolved offsets."""
        with pytest.raises(UnsyncedTrackError):
            compute_sync_range([Track(display_name="A", duration=5.0)])

    def test_clamp(self):
        """Test clamping into the range."""
        sync_range = SyncRange(1.0, 4.0)

        assert sync_range.clamp(0.0) == 1.0
        assert sync_range.clamp(5.0) == 4.0
        assert sync_range.contains(2.0)
        assert sync_range.span == 3.0


class TestMasterClock:
    """Tests for MasterClock playback."""

    @pytest.fixture
    def clock(self, make_handle):
        tracks = [
            make_track(make_handle, "A", 0.0),
            make_track(make_handle, "B", 2.0),
        ]
        return MasterClock(tracks, compute_sync_range(tracks))

    def test_seek_positions_every_stream(self, clock):
        """Test seeking moves each handle to its offset-aligned time."""
        clock.seek(10.0)

        a, b = (t.handle for t in clock.tracks)
        assert clock.master_time == 10.0
        assert a.position == 10.0
        assert b.position == 12.0
        assert clock.state == ClockState.IDLE

    def test_seek_is_clamped(self, clock):
        """Test seek beyond the range lands on its bounds."""
        assert clock.seek(500.0) == 98.0
        assert clock.seek(-3.0) == 0.0

    def test_seek_deadband(self, clock):
        """Test handles within 1 ms of target are left alone."""
        clock.seek(10.0)
        b = clock.tracks[1].handle

        b.drift_to(12.0005)
        clock.seek(10.0)
        assert len(b.seeks) == 1

        b.drift_to(12.002)
        clock.seek(10.0)
        assert len(b.seeks) == 2
        assert b.position == 12.0

    def test_play_and_pause(self, clock):
        """Test play starts and pause stops every stream."""
        clock.seek(10.0)

        assert clock.play()
        assert clock.is_playing
        assert all(not t.handle.paused for t in clock.tracks)
        assert not clock.play()

        assert clock.pause()
        assert all(t.handle.paused for t in clock.tracks)
        assert not clock.pause()

    def test_play_deadband(self, clock):
        """Test play leaves handles within 1 ms of target in place."""
        clock.seek(10.0)
        b = clock.tracks[1].handle

        b.drift_to(12.0005)
        clock.play()
        assert len(b.seeks) == 1

    def test_play_realigns_drifted_handle(self, clock):
        """Test play pulls a handle back when it moved while idle."""
        clock.seek(10.0)
        b = clock.tracks[1].handle

        b.drift_to(12.5)
        clock.play()
        assert len(b.seeks) == 2
        assert b.position == 12.0

    def test_play_at_end_restarts(self, clock):
        """Test play from the range end rewinds to the start."""
        clock.seek(98.0)

        clock.play()

        assert clock.master_time == 0.0
        assert clock.tracks[1].handle.position == 2.0

    def test_tick_follows_reference(self, clock):
        """Test master time derives from the reference stream."""
        clock.seek(10.0)
        clock.play()
        clock.tracks[0].handle.drift_to(11.0)
        clock.tracks[1].handle.drift_to(13.0)

        assert clock.tick()
        assert clock.master_time == 11.0
        assert clock.current_frame() == 275

    def test_drift_corrected(self, clock):
        """Test a follower 100 ms off target is pulled back."""
        clock.seek(10.0)
        clock.play()
        clock.tracks[0].handle.drift_to(11.0)
        clock.tracks[1].handle.drift_to(13.1)

        clock.tick()

        assert clock.tracks[1].handle.position == 13.0
        assert clock.corrections == 1

    def test_small_drift_tolerated(self, clock):
        """Test a follower 50 ms off target is not touched."""
        clock.seek(10.0)
        clock.play()
        clock.tracks[0].handle.drift_to(11.0)
        clock.tracks[1].handle.drift_to(13.05)

        clock.tick()

        assert clock.tracks[1].handle.position == 13.05
        assert clock.corrections == 0

    def test_tick_stops_at_range_end(self, clock):
        """Test reaching master_max pauses and parks on the end."""
        clock.seek(97.0)
        clock.play()
        clock.tracks[0].handle.drift_to(99.0)

        assert not clock.tick()
        assert not clock.is_playing
        assert clock.master_time == 98.0
        assert clock.tracks[0].handle.paused

        clock.tracks[0].handle.drift_to(50.0)
        assert not clock.tick()
        assert clock.master_time == 98.0

    def test_tick_stops_when_reference_pauses(self, clock):
        """Test an externally paused reference stops playback."""
        clock.seek(10.0)
        clock.play()
        clock.tracks[0].handle.drift_to(12.0)
        clock.tracks[0].handle.paused = True

        assert not clock.tick()
        assert clock.state == ClockState.IDLE
        assert clock.master_time == 12.0

    def test_tick_when_idle(self, clock):
        """Test ticks are ignored unless playing."""
        assert not clock.tick()

    def test_seek_stops_playback(self, clock):
        """Test seeking while playing stops the streams."""
        clock.play()

        clock.seek(20.0)

        assert not clock.is_playing
        assert all(t.handle.paused for t in clock.tracks)

    def test_playback_rate(self, clock):
        """Test the rate multiplier is stored and applied on play."""
        clock.set_playback_rate(2.0)
        assert clock.tracks[0].handle.playback_rate == 1.0

        clock.play()
        assert all(t.handle.playback_rate == 2.0 for t in clock.tracks)

        clock.set_playback_rate(0.5)
        assert all(t.handle.playback_rate == 0.5 for t in clock.tracks)

        with pytest.raises(ValueError):
            clock.set_playback_rate(0)

    def test_stepping(self, clock):
        """Test frame steps and jumps."""
        clock.seek(10.0)

        assert clock.step_frames(1) == pytest.approx(10.04)
        assert clock.jump(-1.0) == pytest.approx(9.04)
        assert clock.seek_end() == 98.0
        assert clock.seek_start() == 0.0

    def test_master_frame_rate_from_first_track(self, make_handle):
        """Test the frame counter follows the first stream's rate."""
        tracks = [
            make_track(make_handle, "A", 0.0, frame_rate=30),
            make_track(make_handle, "B", 0.0, frame_rate=60),
        ]
        clock = MasterClock(tracks, compute_sync_range(tracks))

        clock.seek(1.5)

        assert clock.master_frame_rate == 30
        assert clock.current_frame() == 45

    def test_no_tracks(self):
        """Test a clock with no streams uses defaults."""
        clock = MasterClock([])

        assert clock.master_frame_rate == 25
        assert clock.seek(70.0) == 60.0


class TestNameMatching:
    """Tests for stream name matching."""

    def test_normalize_name(self):
        """Test canonical name form."""
        assert normalize_name("Cam_A-left.MP4") == "cam a left"
        assert normalize_name("  cam   a ") == "cam a"

    def test_overlap(self):
        """Test containment in either direction."""
        assert names_overlap("left", "GoPro left side.mp4")
        assert names_overlap("gopro_left_side", "left")
        assert not names_overlap("", "left")

    def test_exact_match_wins(self):
        """Test exact matches are claimed before substring matches."""
        result = match_names(["cam", "cam_b"], ["cam_b.mp4", "cam.mp4"], key=lambda s: s)

        assert result.complete
        assert result.matches == {0: "cam.mp4", 1: "cam_b.mp4"}
        assert result.unclaimed == []

    def test_normalize_keeps_inner_suffix(self):
        """Test names already without an extension keep their dotted part."""
        assert normalize_name("game.cam1", strip_ext=False) == "game cam1"
        assert normalize_name("game.cam1") == "game"

    def test_match_tracks_by_display_name(self):
        """Test the default key matches against track display names."""
        left = Track(display_name="left.mp4", duration=10.0)
        right = Track(display_name="right.mp4", duration=10.0)

        result = match_names(["right", "left"], [left, right])

        assert result.complete
        assert result.matches[0] is right
        assert result.matches[1] is left

    def test_each_item_claimed_once(self):
        """Test two names cannot map to the same stream."""
        result = match_names(["left", "left"], ["left.mp4"], key=lambda s: s)

        assert result.matches == {0: "left.mp4"}
        assert result.unmatched_names == [1]
        assert not result.complete

    def test_unclaimed_items(self):
        """Test streams nobody matched are reported in order."""
        result = match_names(["b"], ["a.mp4", "b.mp4", "c.mp4"], key=lambda s: s)

        assert result.unclaimed == ["a.mp4", "c.mp4"]


class TestOffsetEstimator:
    """Tests for median offset estimation."""

    def test_median_resists_outliers(self):
        """Test a bad row does not pull the estimate."""
        estimator = OffsetEstimator()

        estimate = estimator.estimate(
            "A",
            local_frames=[50, None, 100, 999],
            master_times=[1.0, 2.0, 3.0, 4.0],
            frame_rate=25,
        )

        assert estimate.offset == pytest.approx(1.0)
        assert estimate.sample_count == 3
        assert estimate.spread == pytest.approx(0.0)
        assert estimate.reliable

    def test_no_samples(self):
        """Test a stream without frames falls back to 0."""
        estimate = OffsetEstimator().estimate("A", [None, None], [1.0, 2.0], 25)

        assert estimate.offset == 0.0
        assert estimate.sample_count == 0
        assert not estimate.reliable

    def test_negative_offset(self):
        """Test recovering a stream that started after the sync moment."""
        estimate = OffsetEstimator().estimate("B", [20, 45, 70], [1.0, 2.0, 3.0], 25)

        assert estimate.offset == pytest.approx(-0.2)
