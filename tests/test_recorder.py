import pytest

from pageink.ink.errors import InvalidState
from pageink.ink.mapper import PageSpace, Rect, map_point
from pageink.ink.model import DocumentSession
from pageink.ink.recorder import PenStyle, PointerRouter, RecorderState, StrokeRecorder

STYLE = PenStyle(color="#0b57d0", width=2.5)


def test_map_point_rescales_into_page_space():
    rect = Rect(left=100, top=50, width=400, height=500)
    space = PageSpace(width=800, height=1000)
    assert map_point(100, 50, rect, space) == (0.0, 0.0)
    assert map_point(300, 300, rect, space) == (400.0, 500.0)
    assert map_point(500, 550, rect, space) == (800.0, 1000.0)


def test_begin_extend_commit():
    rec = StrokeRecorder(STYLE, id_factory=lambda: "fixed")
    live = rec.begin(1, "pen", (1.0, 2.0), 10.0)
    assert rec.state is RecorderState.RECORDING
    assert live.id == "fixed" and len(live.points) == 1

    assert rec.extend((3.0, 4.0), 15.0)
    assert rec.extend((5.0, 6.0), 15.0)  # coalesced timestamp
    stroke = rec.commit()

    assert rec.state is RecorderState.IDLE
    assert [p.t for p in stroke.points] == [10.0, 15.0, 15.0]
    assert stroke.t_start == 10.0 and stroke.t_end == 15.0
    assert stroke.color == "#0b57d0" and stroke.width == 2.5


def test_commit_without_extend_is_single_point():
    rec = StrokeRecorder(STYLE)
    rec.begin(1, None, (1.0, 1.0), 42.0)
    stroke = rec.commit()
    assert len(stroke.points) == 1
    assert stroke.t_start == stroke.t_end == 42.0


def test_late_sample_keeps_timestamps_non_decreasing():
    rec = StrokeRecorder(STYLE)
    rec.begin(1, None, (0.0, 0.0), 100.0)
    rec.extend((1.0, 1.0), 99.0)
    stroke = rec.commit()
    assert [p.t for p in stroke.points] == [100.0, 100.0]
    assert stroke.t_end == 100.0


def test_fresh_ids_per_stroke():
    rec = StrokeRecorder(STYLE)
    rec.begin(1, None, (0.0, 0.0), 0.0)
    a = rec.commit()
    rec.begin(1, None, (0.0, 0.0), 1.0)
    b = rec.commit()
    assert a.id != b.id


def test_abort_discards():
    rec = StrokeRecorder(STYLE)
    rec.begin(1, None, (0.0, 0.0), 0.0)
    rec.abort()
    assert rec.state is RecorderState.IDLE
    with pytest.raises(InvalidState):
        rec.commit()


@pytest.mark.parametrize("op", ["extend", "commit", "abort", "snapshot"])
def test_idle_transitions_are_invalid(op):
    rec = StrokeRecorder(STYLE)
    args = {"extend": ((0.0, 0.0), 0.0)}.get(op, ())
    with pytest.raises(InvalidState):
        getattr(rec, op)(*args)


def test_begin_while_recording_is_invalid():
    rec = StrokeRecorder(STYLE)
    rec.begin(1, None, (0.0, 0.0), 0.0)
    with pytest.raises(InvalidState):
        rec.begin(1, None, (0.0, 0.0), 1.0)


def test_capability_filter_rejects_begin_and_samples():
    rec = StrokeRecorder(STYLE, accept=frozenset({"pen"}))
    assert rec.begin(1, "touch", (0.0, 0.0), 0.0) is None
    assert rec.state is RecorderState.IDLE

    rec.begin(1, "pen", (0.0, 0.0), 0.0)
    assert not rec.extend((1.0, 1.0), 5.0, "mouse")
    assert rec.extend((2.0, 2.0), 6.0, "pen")
    assert len(rec.commit().points) == 2


class TestPointerRouter:

    @pytest.fixture
    def doc(self):
        return DocumentSession.from_dimensions("doc.pdf", [(800, 1000), (800, 1000)])

    @pytest.fixture
    def rect(self):
        # on-screen at half scale
        return Rect(0, 0, 400, 500)

    def test_two_pointers_stay_isolated(self, doc, rect):
        router = PointerRouter(doc, STYLE)
        router.down(1, "pen", 1, 10, 10, rect, ts=0)
        router.down(2, "pen", 1, 200, 200, rect, ts=1)
        router.move(1, "pen", 11, 11, rect, ts=2)
        router.move(2, "pen", 201, 201, rect, ts=3)
        router.move(1, "pen", 12, 12, rect, ts=4)

        _, first = router.up(1)
        assert [(p.x, p.y) for p in first.points] == [(20, 20), (22, 22), (24, 24)]

        # pointer 2 still recording, untouched by pointer 1's commit
        (live,) = router.in_progress(1)
        assert [(p.x, p.y) for p in live.points] == [(400, 400), (402, 402)]

        _, second = router.up(2)
        assert doc.page(1).strokes == [first, second]

    def test_rect_is_rederived_per_sample(self, doc):
        router = PointerRouter(doc, STYLE)
        router.down(1, None, 1, 10, 10, Rect(0, 0, 800, 1000), ts=0)
        # page scrolled up by 100px between samples
        router.move(1, None, 10, -90, Rect(0, -100, 800, 1000), ts=5)
        _, stroke = router.up(1)
        assert [(p.x, p.y) for p in stroke.points] == [(10, 10), (10, 10)]

    def test_capture_stays_on_the_down_page(self, doc, rect):
        router = PointerRouter(doc, STYLE)
        router.down(1, None, 2, 0, 0, rect, ts=0)
        router.move(1, None, 5, 5, rect, ts=1)
        page_number, _ = router.up(1)
        assert page_number == 2
        assert doc.page(1).strokes == []
        assert len(doc.page(2).strokes) == 1

    def test_pen_only_gesture_never_commits(self, doc, rect):
        router = PointerRouter(doc, STYLE, accept=frozenset({"pen"}))
        assert router.down(1, "touch", 1, 10, 10, rect, ts=0) is None
        assert router.move(1, "touch", 11, 11, rect, ts=1) is None
        assert router.up(1) is None
        assert doc.page(1).strokes == []

    def test_cancel_aborts(self, doc, rect):
        router = PointerRouter(doc, STYLE)
        router.down(7, None, 1, 10, 10, rect, ts=0)
        page_number, dropped = router.cancel(7)
        assert page_number == 1 and len(dropped.points) == 1
        assert router.up(7) is None
        assert doc.page(1).strokes == []

    def test_second_down_for_captured_pointer_is_ignored(self, doc, rect):
        router = PointerRouter(doc, STYLE)
        router.down(1, None, 1, 10, 10, rect, ts=0)
        assert router.down(1, None, 1, 50, 50, rect, ts=1) is None
        _, stroke = router.up(1)
        assert len(stroke.points) == 1

    def test_clock_used_without_event_timestamp(self, doc, rect):
        ticks = iter([100.0, 130.0])
        router = PointerRouter(doc, STYLE, clock=lambda: next(ticks))
        router.down(1, None, 1, 0, 0, rect)
        router.move(1, None, 1, 1, rect)
        _, stroke = router.up(1)
        assert (stroke.t_start, stroke.t_end) == (100.0, 130.0)

    def test_down_on_missing_page_raises(self, doc, rect):
        router = PointerRouter(doc, STYLE)
        with pytest.raises(KeyError):
            router.down(1, None, 3, 0, 0, rect)

    def test_untyped_move_rejected_under_pen_only(self, doc, rect):
        router = PointerRouter(doc, STYLE, accept=frozenset({"pen"}))
        router.down(2, "pen", 1, 10, 10, rect, ts=0)
        assert router.move(2, None, 11, 11, rect, ts=1) is None
        _, stroke = router.up(2)
        assert len(stroke.points) == 1


def test_untyped_sample_rejected_by_filter():
    rec = StrokeRecorder(STYLE, accept=frozenset({"pen"}))
    rec.begin(1, "pen", (0.0, 0.0), 0.0)
    assert not rec.extend((1.0, 1.0), 5.0)
    assert len(rec.commit().points) == 1
