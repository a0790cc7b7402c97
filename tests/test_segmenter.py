"""Unit tests for the caption segmenter.

Covers cue parsing, speaker extraction from voice tags and ``Name:``
prefixes, tolerant handling of malformed cues, consecutive-speaker merging,
filler removal and the time/rendering helpers.
"""

from __future__ import annotations

from src.app.transcripts.schemas import ParseOptions, TranscriptEntry, TranscriptMetadata
from src.app.transcripts.segmenter import (
    combine_consecutive_speaker_entries,
    extract_speaker,
    format_entries_as_text,
    normalize_timestamp,
    parse_captions,
    remove_filler_words,
    seconds_to_time_string,
    time_to_seconds,
    transcript_to_markdown,
)
from tests.fakes import SAMPLE_VTT


def _meta() -> TranscriptMetadata:
    return TranscriptMetadata(meeting_id="m-1", topic="週次定例", date="2026-03-01")


def _entry(speaker: str | None, text: str, start: str, end: str) -> TranscriptEntry:
    return TranscriptEntry(start_time=start, end_time=end, speaker=speaker, text=text)


class TestParseCaptions:
    """Tests for parse_captions."""

    def test_voice_tags_and_merge(self):
        transcript = parse_captions(SAMPLE_VTT, _meta())

        assert len(transcript.entries) == 2
        first, second = transcript.entries
        assert first.speaker == "田中"
        assert first.text == "本日はリリース計画について話します。"
        assert second.speaker == "佐藤"
        assert second.text == "テスト体制も確認したいです。 回帰テストは来週から始めます。"
        assert second.start_time == "00:00:04.500"
        assert second.end_time == "00:00:12.000"

    def test_speakers_populated_in_first_seen_order(self):
        transcript = parse_captions(SAMPLE_VTT, _meta())

        assert transcript.metadata.speakers == ["田中", "佐藤"]
        assert transcript.metadata.speaker_count == 2

    def test_raw_text_is_joined_entry_text(self):
        transcript = parse_captions(SAMPLE_VTT, _meta())

        assert transcript.raw_text == "\n".join(e.text for e in transcript.entries)

    def test_caller_metadata_not_mutated(self):
        meta = _meta()
        transcript = parse_captions(SAMPLE_VTT, meta)

        assert meta.speakers is None
        assert meta.speaker_count is None
        assert transcript.metadata is not meta

    def test_combine_disabled_keeps_every_cue(self):
        transcript = parse_captions(
            SAMPLE_VTT, _meta(), ParseOptions(combine_lines=False)
        )

        assert [e.speaker for e in transcript.entries] == ["田中", "佐藤", "佐藤"]

    def test_colon_prefix_speaker(self):
        raw = "WEBVTT\n\n00:00:01.000 --> 00:00:02.000\nAlice: Hello there\n"

        transcript = parse_captions(raw, _meta())

        assert transcript.entries[0].speaker == "Alice"
        assert transcript.entries[0].text == "Hello there"

    def test_speaker_extraction_disabled(self):
        raw = "00:00:01.000 --> 00:00:02.000\nAlice: Hello there\n"

        transcript = parse_captions(raw, _meta(), ParseOptions(extract_speakers=False))

        assert transcript.entries[0].speaker is None
        assert transcript.entries[0].text == "Alice: Hello there"
        assert transcript.metadata.speakers == []

    def test_multiline_cue_joined_with_space(self):
        raw = "00:00:01.000 --> 00:00:03.000\nfirst line\nsecond line\n"

        transcript = parse_captions(raw, _meta())

        assert transcript.entries[0].text == "first line second line"

    def test_malformed_timing_line_skipped(self):
        raw = (
            "WEBVTT\n\n"
            "00:00:xx --> 00:00:02.000\nbroken cue\n\n"
            "00:00:05.000 --> 00:00:03.000\nbackwards cue\n\n"
            "00:00:06.000 --> 00:00:07.000\nvalid cue\n"
        )

        transcript = parse_captions(raw, _meta())

        assert [e.text for e in transcript.entries] == ["valid cue"]

    def test_out_of_order_cue_dropped(self):
        raw = (
            "00:00:05.000 --> 00:00:06.000\n<v Ann>first</v>\n\n"
            "00:00:02.000 --> 00:00:03.000\n<v Bob>late arrival</v>\n\n"
            "00:00:05.000 --> 00:00:07.000\n<v Bob>same start</v>\n\n"
            "00:00:08.000 --> 00:00:09.000\n<v Ann>last</v>\n"
        )

        transcript = parse_captions(raw, _meta(), ParseOptions(combine_lines=False))

        assert [e.text for e in transcript.entries] == ["first", "same start", "last"]
        assert [e.start_time for e in transcript.entries] == [
            "00:00:05.000",
            "00:00:05.000",
            "00:00:08.000",
        ]

    def test_cue_settings_and_short_timestamps(self):
        raw = "01:02.500 --> 01:04.000 align:start position:10%\nhello\n"

        transcript = parse_captions(raw, _meta())

        assert transcript.entries[0].start_time == "00:01:02.500"
        assert transcript.entries[0].end_time == "00:01:04.000"

    def test_header_and_note_blocks_ignored(self):
        raw = (
            "WEBVTT\nKind: captions\n\n"
            "NOTE this is a comment\n\n"
            "00:00:01.000 --> 00:00:02.000\nhello\n\n"
            "NOTE another comment\nspanning lines\n"
        )

        transcript = parse_captions(raw, _meta())

        assert [e.text for e in transcript.entries] == ["hello"]

    def test_cue_without_text_not_emitted(self):
        raw = "00:00:01.000 --> 00:00:02.000\n\n00:00:03.000 --> 00:00:04.000\nhello\n"

        transcript = parse_captions(raw, _meta())

        assert len(transcript.entries) == 1

    def test_filler_only_entries_dropped(self):
        raw = (
            "00:00:01.000 --> 00:00:02.000\n<v Bob>um</v>\n\n"
            "00:00:03.000 --> 00:00:04.000\n<v Ann>えーと 今日は um the plan</v>\n"
        )

        transcript = parse_captions(raw, _meta(), ParseOptions(remove_filler=True))

        assert [e.text for e in transcript.entries] == ["今日は the plan"]
        assert transcript.metadata.speakers == ["Ann"]
        assert transcript.raw_text == "今日は the plan"


class TestCombineConsecutiveSpeakerEntries:
    """Tests for combine_consecutive_speaker_entries."""

    def test_merges_same_speaker_runs(self):
        entries = [
            _entry("A", "one", "00:00:01.000", "00:00:02.000"),
            _entry("A", "two", "00:00:02.000", "00:00:03.000"),
            _entry("B", "three", "00:00:03.000", "00:00:04.000"),
            _entry("A", "four", "00:00:04.000", "00:00:05.000"),
        ]

        merged = combine_consecutive_speaker_entries(entries)

        assert [(e.speaker, e.text) for e in merged] == [
            ("A", "one two"),
            ("B", "three"),
            ("A", "four"),
        ]
        assert merged[0].start_time == "00:00:01.000"
        assert merged[0].end_time == "00:00:03.000"

    def test_inputs_untouched(self):
        entries = [
            _entry("A", "one", "00:00:01.000", "00:00:02.000"),
            _entry("A", "two", "00:00:02.000", "00:00:03.000"),
        ]

        combine_consecutive_speaker_entries(entries)

        assert entries[0].text == "one"
        assert entries[0].end_time == "00:00:02.000"


class TestHelpers:
    """Tests for the time, speaker and rendering helpers."""

    def test_normalize_timestamp(self):
        assert normalize_timestamp("1:02:03.5") == "01:02:03.500"
        assert normalize_timestamp("00:00:01,250") == "00:00:01.250"
        assert normalize_timestamp("not a time") is None
        assert normalize_timestamp("00:61:00.000") is None

    def test_time_to_seconds(self):
        assert time_to_seconds("01:02:03.500") == 3723.5
        assert time_to_seconds("02:03.250") == 123.25

    def test_seconds_to_time_string(self):
        assert seconds_to_time_string(3723.9) == "01:02:03"
        assert seconds_to_time_string(0) == "00:00:00"

    def test_extract_speaker(self):
        assert extract_speaker("<v.loud Mary Jane>hi</v>") == "Mary Jane"
        assert extract_speaker("Bob: hi") == "Bob"
        assert extract_speaker("no speaker here") == ""

    def test_remove_filler_words(self):
        assert remove_filler_words("あのですね 予算は um 確定です") == "予算は 確定です"
        assert remove_filler_words("  plain   text ") == "plain text"

    def test_format_entries_as_text(self):
        entries = [
            _entry("A", "hello", "00:00:01.000", "00:00:02.000"),
            _entry(None, "anonymous", "00:00:02.000", "00:00:03.000"),
        ]

        assert format_entries_as_text(entries) == "A: hello\nanonymous"

    def test_transcript_to_markdown(self):
        transcript = parse_captions(SAMPLE_VTT, _meta())

        markdown = transcript_to_markdown(transcript)

        assert markdown.startswith("# 会議文字起こし: 週次定例")
        assert "- 田中" in markdown
        assert "### 00:00:01" in markdown
        assert "**佐藤**: テスト体制も確認したいです。" in markdown
