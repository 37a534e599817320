from src.stream_core.models import TranscriptSegment
from src.stream_core.transcript_store import TranscriptStore


def _segment(text: str, ts: int, speaker: str | None = None) -> TranscriptSegment:
    return TranscriptSegment(
        speaker_label=speaker,
        text=text,
        relative_start=0.0,
        relative_end=1.0,
        absolute_timestamp=ts,
    )


def test_transcript_store_appends_in_order():
    store = TranscriptStore()
    assert store.append([_segment("Hello", 1_000, "Ada"), _segment("Hi", 2_000)]) == 2
    store.append([_segment("Agenda first", 9_000, "Ada")])

    snapshot = store.snapshot()
    assert len(store) == 3
    assert [item.text for item in snapshot] == ["Hello", "Hi", "Agenda first"]
    assert isinstance(snapshot, tuple)


def test_snapshot_is_unaffected_by_later_appends():
    store = TranscriptStore()
    store.append([_segment("one", 1)])
    before = store.snapshot()
    store.append([_segment("two", 2)])
    assert len(before) == 1
    assert len(store.snapshot()) == 2


def test_lines_mark_unknown_speakers():
    store = TranscriptStore()
    store.append([_segment("Hello", 1, "Ada"), _segment("Who is this?", 2)])
    assert store.lines() == ["Ada: Hello", "?: Who is this?"]


def test_segment_wire_format():
    wire = _segment("Hello", 1_234, "Ada").to_wire()
    assert wire == {"speaker": "Ada", "text": "Hello", "start": 0.0, "end": 1.0, "timestamp": 1_234}
