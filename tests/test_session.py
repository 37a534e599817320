import asyncio

from src.stream_core.models import SpeakerSnapshot
from src.stream_core.session import MeetingSession, SessionConfig, SessionState
from tests.fakes import (
    START_MS,
    FakeSummarizer,
    FakeTranscoder,
    FakeTranscriber,
    RecordingSink,
    seg,
    summary,
)


def _session(clock, transcriber, *, summarizer=None, sinks=None, transcoder=None, **config):
    config.setdefault("transcribe_interval_ms", 8000)
    config.setdefault("summary_interval_ms", 60_000)
    return MeetingSession(
        "meeting-1",
        transcoder=transcoder or FakeTranscoder(),
        transcriber=transcriber,
        summarizer=summarizer,
        sinks=sinks if sinks is not None else [RecordingSink()],
        config=SessionConfig(**config),
        clock=clock,
    )


def test_elapsed_clock_follows_interval_and_reported_spans(clock):
    transcriber = FakeTranscriber(
        [
            [seg("Good morning.", 0.0, 3.0), seg("Let's start.", 3.0, 7.5)],
            [seg("Next topic.", 0.5, 9.2)],
        ]
    )
    sink = RecordingSink()

    async def scenario():
        session = _session(clock, transcriber, sinks=[sink])
        # 9 seconds of audio in 1.5s chunks arriving over 8200ms
        for index in range(6):
            if index:
                clock.advance(1640)
            session.on_audio(b"c" * 16)
        await session.drain()
        assert len(transcriber.calls) == 1
        assert session.timeline.elapsed_ms == 8000

        for _ in range(5):
            clock.advance(1700)
            session.on_audio(b"d" * 16)
        await session.drain()
        return session

    session = asyncio.run(scenario())
    assert len(transcriber.calls) == 2
    assert session.timeline.elapsed_ms == 17_200
    timestamps = [item["timestamp"] for patch in sink.patches for item in patch["segments"]]
    assert timestamps == [int(START_MS), int(START_MS) + 3000, int(START_MS) + 8000 + 500]
    assert [patch["type"] for patch in sink.patches] == ["append", "append"]
    assert all("summary" not in patch for patch in sink.patches)


def test_segments_are_attributed_from_out_of_order_snapshots(clock):
    transcriber = FakeTranscriber([[seg("Hi all", 0.5, 1.0), seg("Thanks Ada", 2.5, 3.0)]])
    sink = RecordingSink()

    async def scenario():
        session = _session(clock, transcriber, sinks=[sink], language="tr")
        session.on_audio(b"audio")
        session.on_speaker_snapshot(SpeakerSnapshot.of(int(START_MS) + 2000, ["Grace", "Ada"]))
        session.on_speaker_snapshot(SpeakerSnapshot.of(int(START_MS), ["Ada"]))
        await session.close()
        return session

    session = asyncio.run(scenario())
    assert [item["speaker"] for item in sink.patches[0]["segments"]] == ["Ada", "Grace"]
    assert transcriber.calls[0][1] == "tr"
    assert session.transcript.lines() == ["Ada: Hi all", "Grace: Thanks Ada"]


def test_close_waits_for_in_flight_cycle_then_flushes_tail(clock):
    transcriber = FakeTranscriber([[seg("first", 0.0, 1.0)], [seg("tail", 0.0, 1.0)]])
    transcoder = FakeTranscoder()
    sink = RecordingSink()

    async def scenario():
        transcriber.gate = asyncio.Event()
        session = _session(clock, transcriber, sinks=[sink], transcoder=transcoder)
        session.on_audio(b"a")
        clock.advance(8000)
        session.on_audio(b"b")
        await asyncio.sleep(0)
        assert session.buffer.in_flight
        session.on_audio(b"tail")

        closing = asyncio.ensure_future(session.close())
        await asyncio.sleep(0)
        assert session.state is SessionState.CLOSING
        assert not closing.done()

        transcriber.gate.set()
        await closing
        return session

    session = asyncio.run(scenario())
    assert session.state is SessionState.CLOSED
    assert transcoder.blobs == [b"ab", b"tail"]
    assert [patch["segments"][0]["text"] for patch in sink.patches] == ["first", "tail"]


def test_close_is_idempotent_and_closed_session_ignores_input(clock):
    transcriber = FakeTranscriber([[seg("only", 0.0, 1.0)]])

    async def scenario():
        session = _session(clock, transcriber)
        session.on_audio(b"a")
        await asyncio.gather(session.close(), session.close())
        await session.close()
        session.on_audio(b"late")
        session.on_speaker_snapshot(SpeakerSnapshot.of(1, ["Late"]))
        await session.drain()
        return session

    session = asyncio.run(scenario())
    assert session.closed
    assert len(transcriber.calls) == 1
    assert session.buffer.pending_bytes == 0
    assert len(session.ledger) == 0


def test_closing_idle_session_skips_transcription(clock):
    transcriber = FakeTranscriber()

    async def scenario():
        session = _session(clock, transcriber)
        assert session.state is SessionState.IDLE
        await session.close()
        return session

    session = asyncio.run(scenario())
    assert session.state is SessionState.CLOSED
    assert transcriber.calls == []


def test_transcription_failure_drops_window_but_advances_clock(clock):
    transcriber = FakeTranscriber([RuntimeError("whisper unavailable"), [seg("back", 0.0, 2.0)]])
    sink = RecordingSink()

    async def scenario():
        session = _session(clock, transcriber, sinks=[sink])
        session.on_audio(b"lost")
        clock.advance(8000)
        session.on_audio(b"-window")
        await session.drain()
        assert sink.patches == []
        assert session.timeline.elapsed_ms == 8000

        clock.advance(8000)
        session.on_audio(b"kept")
        await session.drain()
        return session

    session = asyncio.run(scenario())
    assert session.state is SessionState.CAPTURING
    assert session.timeline.elapsed_ms == 16_000
    assert sink.patches[0]["segments"][0]["timestamp"] == int(START_MS) + 8000
    assert len(session.transcript) == 1


def test_speaker_after_failed_cycle_is_resolved_at_real_time(clock):
    transcriber = FakeTranscriber([RuntimeError("whisper unavailable"), [seg("my turn", 1.0, 2.0)]])
    sink = RecordingSink()

    async def scenario():
        session = _session(clock, transcriber, sinks=[sink])
        session.on_speaker_snapshot(SpeakerSnapshot.of(int(START_MS), ["Ada"]))
        session.on_speaker_snapshot(SpeakerSnapshot.of(int(START_MS) + 8500, ["Grace"]))
        session.on_audio(b"lost")
        clock.advance(8000)
        session.on_audio(b"-window")
        await session.drain()
        clock.advance(8000)
        session.on_audio(b"kept")
        await session.drain()

    asyncio.run(scenario())
    segment = sink.patches[0]["segments"][0]
    assert segment["timestamp"] == int(START_MS) + 9000
    assert segment["speaker"] == "Grace"


def test_transcoder_failure_never_reaches_transcriber(clock):
    transcriber = FakeTranscriber([[seg("unused", 0.0, 1.0)]])
    sink = RecordingSink()

    async def scenario():
        session = _session(clock, transcriber, sinks=[sink], transcoder=FakeTranscoder(fail=True))
        session.on_audio(b"broken")
        await session.close()

    asyncio.run(scenario())
    assert transcriber.calls == []
    assert sink.patches == []


def test_blank_segments_advance_clock_without_patch(clock):
    transcriber = FakeTranscriber([[seg("   ", 0.0, 9.0)]])
    sink = RecordingSink()

    async def scenario():
        session = _session(clock, transcriber, sinks=[sink])
        session.on_audio(b"silence")
        await session.close()
        return session

    session = asyncio.run(scenario())
    assert sink.patches == []
    assert session.timeline.elapsed_ms == 9000
    assert session.completed_cycles == 1


def test_failed_summary_repeats_previous_summary(clock):
    first = summary("Kickoff agreed.")
    summarizer = FakeSummarizer([first, ValueError("unparseable")])
    transcriber = FakeTranscriber([[seg("one", 0.0, 1.0)], [seg("two", 0.0, 1.0)]])
    sink = RecordingSink()

    async def scenario():
        session = _session(
            clock,
            transcriber,
            summarizer=summarizer,
            sinks=[sink],
            transcribe_interval_ms=1000,
            summary_interval_ms=0,
        )
        session.on_audio(b"a")
        clock.advance(1000)
        session.on_audio(b"b")
        await session.drain()
        clock.advance(1000)
        session.on_audio(b"c")
        await session.drain()

    asyncio.run(scenario())
    assert len(sink.patches) == 2
    assert sink.patches[0]["summary"] == first.to_wire()
    assert sink.patches[1]["summary"] == first.to_wire()
    assert len(summarizer.calls) == 2


def test_patches_keep_cycle_order_while_summary_is_outstanding(clock):
    summarizer = FakeSummarizer([summary("s1"), summary("s2")])
    transcriber = FakeTranscriber([[seg("one", 0.0, 1.0)], [seg("two", 0.0, 1.0)]])
    sink = RecordingSink()

    async def scenario():
        summarizer.gate = asyncio.Event()
        session = _session(
            clock,
            transcriber,
            summarizer=summarizer,
            sinks=[sink],
            transcribe_interval_ms=1000,
            summary_interval_ms=0,
        )
        session.on_audio(b"a")
        clock.advance(1000)
        session.on_audio(b"b")
        while not summarizer.calls:
            await asyncio.sleep(0)

        # transcription continues while the summary call is outstanding
        clock.advance(1000)
        session.on_audio(b"c")
        while len(session.transcript) < 2:
            await asyncio.sleep(0)
        assert sink.patches == []

        summarizer.gate.set()
        await session.drain()

    asyncio.run(scenario())
    assert [patch["segments"][0]["text"] for patch in sink.patches] == ["one", "two"]
    assert [patch["summary"]["text"] for patch in sink.patches] == ["s1", "s2"]
    assert [len(call) for call in summarizer.calls] == [1, 2]


def test_sink_failure_does_not_stop_session(clock):
    transcriber = FakeTranscriber([[seg("one", 0.0, 1.0)], [seg("two", 0.0, 1.0)]])
    broken = RecordingSink(fail=True)
    healthy = RecordingSink()

    async def scenario():
        session = _session(
            clock, transcriber, sinks=[broken, healthy], transcribe_interval_ms=1000
        )
        session.on_audio(b"a")
        clock.advance(1000)
        session.on_audio(b"b")
        await session.drain()
        clock.advance(1000)
        session.on_audio(b"c")
        await session.close()

    asyncio.run(scenario())
    assert [patch["segments"][0]["text"] for patch in healthy.patches] == ["one", "two"]
