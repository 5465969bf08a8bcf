import pytest

from classroom.live.broadcast_coordinator import BroadcastCoordinator
from classroom.live.errors import BroadcastNotAllowed, MediaAccessDenied, StoreUnavailable
from classroom.live.media_capture import AUDIO, VIDEO, MediaStream, MediaTrack
from classroom.live.models import (
    SESSION_KEY,
    BroadcastMode,
    BroadcastPhase,
    LiveSession,
    Participant,
    PermissionKind,
    UserRole,
)
from classroom.live.session_store import InMemorySessionStore
from classroom.whiteboard.utils.drawing_surface import DrawingSurface


class FakeCapture:
    def __init__(self):
        self.fail_with = None
        self.requests = []
        self.streams = []

    def request_capture(self, audio, video):
        self.requests.append((audio, video))
        if self.fail_with is not None:
            raise self.fail_with
        tracks = []
        if audio:
            tracks.append(MediaTrack(AUDIO, "mic"))
        if video:
            tracks.append(MediaTrack(VIDEO, "cam"))
        stream = MediaStream(tracks)
        self.streams.append(stream)
        return stream


class RecordingStore(InMemorySessionStore):
    def __init__(self):
        super().__init__()
        self.calls = []

    def upsert(self, session):
        self.calls.append(("upsert", session.mode))
        super().upsert(session)

    def delete(self, key=SESSION_KEY):
        self.calls.append(("delete", key))
        super().delete(key)


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def teacher(store, capture):
    return BroadcastCoordinator(Participant("t1", "Teacher", UserRole.TEACHER), store, capture)


@pytest.fixture
def student(store, capture):
    return BroadcastCoordinator(Participant("s1", "Student", UserRole.STUDENT), store, capture)


def _all_tracks_stopped(capture):
    return all(not track.is_live for stream in capture.streams for track in stream.tracks)


def test_start_video_session_goes_live_with_camera_and_mic(teacher, store, capture):
    state = teacher.start_session(BroadcastMode.VIDEO)

    assert state.phase == BroadcastPhase.LIVE
    assert state.mode == BroadcastMode.VIDEO
    assert state.camera_on and state.mic_on
    assert capture.requests == [(True, True)]
    assert store.get(SESSION_KEY).owner_id == "t1"


def test_start_whiteboard_session_captures_audio_only(teacher, capture):
    state = teacher.start_session(BroadcastMode.WHITEBOARD)

    assert capture.requests == [(True, False)]
    assert state.mode == BroadcastMode.WHITEBOARD
    assert not state.camera_on
    assert state.mic_on


def test_start_publishes_before_capturing(teacher, store, capture):
    events = []
    teacher.add_listener(lambda event, payload: events.append((event, payload.get("state"))))

    teacher.start_session(BroadcastMode.VIDEO)

    phases = [state.phase for event, state in events if event == "state_changed"]
    assert phases == [BroadcastPhase.STARTING, BroadcastPhase.LIVE]
    assert store.calls[0] == ("upsert", BroadcastMode.VIDEO)


def test_media_failure_rolls_back_and_deletes_record(teacher, store, capture):
    capture.fail_with = MediaAccessDenied("denied")
    errors = []
    teacher.add_listener(lambda event, payload: errors.append(payload) if event == "media_error" else None)

    with pytest.raises(MediaAccessDenied):
        teacher.start_session(BroadcastMode.VIDEO)

    assert teacher.state.phase == BroadcastPhase.OFFLINE
    assert not teacher.state.camera_on and not teacher.state.mic_on
    assert store.get(SESSION_KEY) is None
    assert store.calls == [("upsert", BroadcastMode.VIDEO), ("delete", SESSION_KEY)]
    assert teacher.last_error == "denied"
    assert errors == [{"message": "denied"}]


def test_store_outage_degrades_to_local_only(teacher, store):
    store.available = False

    state = teacher.start_session(BroadcastMode.WHITEBOARD)

    assert state.phase == BroadcastPhase.LIVE
    teacher.end_session()
    assert teacher.state.phase == BroadcastPhase.OFFLINE


def test_restart_overwrites_singleton_and_releases_old_stream(teacher, store, capture):
    teacher.start_session(BroadcastMode.VIDEO)
    first_stream = capture.streams[0]

    teacher.start_session(BroadcastMode.WHITEBOARD)

    assert len(store) == 1
    assert store.get(SESSION_KEY).mode == BroadcastMode.WHITEBOARD
    assert all(not track.is_live for track in first_stream.tracks)
    assert teacher.state.mode == BroadcastMode.WHITEBOARD


def test_end_session_releases_everything_and_is_idempotent(teacher, store, capture):
    teacher.start_session(BroadcastMode.VIDEO)
    teacher.raise_hand("s9")
    teacher.grant_permission("s8", PermissionKind.DRAW)

    teacher.end_session()
    teacher.end_session()

    assert teacher.state.phase == BroadcastPhase.OFFLINE
    assert teacher.stream is None
    assert _all_tracks_stopped(capture)
    assert store.get(SESSION_KEY) is None
    assert teacher.permissions.raised_hands == []
    assert not teacher.permission_for("s8").can_draw


def test_end_session_stops_tracks_even_if_flags_are_off(teacher, capture):
    teacher.start_session(BroadcastMode.VIDEO)
    teacher.toggle_microphone()
    teacher.toggle_camera()
    assert not teacher.state.camera_on and not teacher.state.mic_on

    teacher.end_session()

    assert _all_tracks_stopped(capture)


def test_student_can_not_start_a_session(student, store):
    with pytest.raises(BroadcastNotAllowed):
        student.start_session(BroadcastMode.VIDEO)
    assert student.state.phase == BroadcastPhase.OFFLINE
    assert store.calls == []


def test_student_leaving_does_not_delete_the_teachers_record(teacher, student, store):
    teacher.start_session(BroadcastMode.WHITEBOARD)
    student.apply_remote_session(store.get(SESSION_KEY))

    student.end_session()

    assert store.get(SESSION_KEY) is not None
    assert teacher.is_live


def test_toggle_microphone_flips_track_enabled(teacher):
    teacher.start_session(BroadcastMode.WHITEBOARD)

    assert teacher.toggle_microphone() is False
    assert not teacher.state.mic_on
    assert all(not track.enabled for track in teacher.stream.audio_tracks())

    assert teacher.toggle_microphone() is True
    assert all(track.enabled for track in teacher.stream.audio_tracks())


def test_toggles_are_ignored_while_offline(teacher, capture):
    assert teacher.toggle_microphone() is False
    assert teacher.toggle_camera() is False
    assert capture.requests == []
    assert teacher.state.phase == BroadcastPhase.OFFLINE


def test_camera_off_stops_video_tracks_and_keeps_audio(teacher):
    teacher.start_session(BroadcastMode.VIDEO)
    stream = teacher.stream

    assert teacher.toggle_camera() is False

    assert not teacher.state.camera_on
    assert teacher.state.mic_on
    assert all(not track.is_live for track in stream.video_tracks())
    assert all(track.is_live for track in stream.audio_tracks())


def test_camera_off_with_muted_mic_reports_mic_off(teacher):
    teacher.start_session(BroadcastMode.VIDEO)
    teacher.toggle_microphone()

    teacher.toggle_camera()

    assert not teacher.state.mic_on


def test_camera_on_recaptures_and_enables_mic(teacher, capture):
    teacher.start_session(BroadcastMode.VIDEO)
    teacher.toggle_microphone()
    teacher.toggle_camera()
    old_stream = teacher.stream

    assert teacher.toggle_camera() is True

    assert capture.requests[-1] == (True, True)
    assert teacher.state.camera_on and teacher.state.mic_on
    assert teacher.stream is not old_stream
    assert all(not track.is_live for track in old_stream.tracks)
    assert all(track.enabled for track in teacher.stream.audio_tracks())


def test_camera_on_failure_keeps_session_live(teacher, capture):
    teacher.start_session(BroadcastMode.VIDEO)
    teacher.toggle_camera()
    capture.fail_with = MediaAccessDenied("no camera")

    with pytest.raises(MediaAccessDenied):
        teacher.toggle_camera()

    assert teacher.state.phase == BroadcastPhase.LIVE
    assert not teacher.state.camera_on


def test_attached_student_surface_follows_draw_right(store, capture):
    student = BroadcastCoordinator(Participant("s1", role=UserRole.STUDENT), store, capture)
    surface = DrawingSurface(50, 50)
    student.attach_surface(surface)
    assert surface.read_only

    student.permissions.grant_permission("s1", PermissionKind.DRAW)
    student.attach_surface(surface)
    assert not surface.read_only


def test_teacher_surface_is_never_read_only(teacher):
    surface = DrawingSurface(50, 50)
    teacher.attach_surface(surface)
    assert not surface.read_only
    assert teacher.is_read_only("t1") is False
    assert teacher.is_read_only("s1") is True


def test_grant_permission_gates_remote_participant(teacher):
    teacher.start_session(BroadcastMode.WHITEBOARD)
    teacher.raise_hand("s1")
    events = []
    teacher.add_listener(lambda event, payload: events.append(event))

    teacher.grant_permission("s1", PermissionKind.DRAW)

    assert teacher.is_read_only("s1") is False
    assert teacher.permissions.raised_hands == ["s1"]
    assert "permissions_changed" in events


def test_student_can_not_grant(student):
    with pytest.raises(BroadcastNotAllowed):
        student.grant_permission("s2", PermissionKind.SPEAK)


def test_raise_hand_emits_once(teacher):
    events = []
    teacher.add_listener(lambda event, payload: events.append((event, payload["raised_hands"])))

    assert teacher.raise_hand("s1") is True
    assert teacher.raise_hand("s1") is False

    assert events == [("hand_raised", ["s1"])]


def test_failing_listener_does_not_break_mutation(teacher):
    def broken(event, payload):
        raise RuntimeError("boom")

    teacher.add_listener(broken)
    teacher.start_session(BroadcastMode.WHITEBOARD)
    assert teacher.is_live

    teacher.remove_listener(broken)
    teacher.end_session()
    assert not teacher.is_live


def test_apply_remote_session_adopts_mode(student, store):
    changed = student.apply_remote_session(LiveSession.create(BroadcastMode.VIDEO, "t1"))

    assert changed
    assert student.state.phase == BroadcastPhase.LIVE
    assert student.state.mode == BroadcastMode.VIDEO
    assert not student.state.camera_on and not student.state.mic_on


def test_store_errors_are_the_store_taxonomy():
    store = InMemorySessionStore()
    store.available = False
    with pytest.raises(StoreUnavailable):
        store.get(SESSION_KEY)
