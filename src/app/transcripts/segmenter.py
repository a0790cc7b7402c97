"""Caption segmenter -- WebVTT-style caption markup to StructuredTranscript.

Malformed cues are dropped instead of raising, and so is any cue starting
before the previously emitted one. Every emitted entry has a start time, an
end time not before it and non-empty text, and entries come in
non-decreasing start-time order.

Speaker attribution comes from ``<v Name>`` voice tags when present and
otherwise from a leading ``Name:`` prefix on the first text line of a cue.
"""

from __future__ import annotations

import re

import structlog

from src.app.transcripts.schemas import (
    ParseOptions,
    StructuredTranscript,
    TranscriptEntry,
    TranscriptMetadata,
)

logger = structlog.get_logger(__name__)


# ── Patterns ─────────────────────────────────────────────────────────────────

_TIMESTAMP = re.compile(r"^(?:(\d+):)?(\d{1,2}):(\d{2})[.,](\d{1,3})$")
_VOICE_TAG = re.compile(r"<v[^>]*?\s+([^>]*)>", re.IGNORECASE)
_COLON_PREFIX = re.compile(r"^([^:]+):\s*(.*)$")
_MARKUP_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")

# Redundant phrases are stripped before the single-word fillers they contain.
_REDUNDANT_PATTERNS: list[re.Pattern] = [
    re.compile(r"\bあのですね(?:\s|$|\b)"),
    re.compile(r"\bということで(?:\s|$|\b)"),
    re.compile(r"\bといいますか(?:\s|$|\b)"),
    re.compile(r"\bというか(?:\s|$|\b)"),
]

_FILLER_PATTERNS: list[re.Pattern] = [
    re.compile(r"\bあの(?:\s|$|\b)"),
    re.compile(r"\bえーと(?:\s|$|\b)"),
    re.compile(r"\bえっと(?:\s|$|\b)"),
    re.compile(r"\bあー(?:\s|$|\b)"),
    re.compile(r"\bまあ(?:\s|$|\b)"),
    re.compile(r"\bうーん(?:\s|$|\b)"),
    re.compile(r"\bその(?:\s|$|\b)"),
    re.compile(r"\bなんか(?:\s|$|\b)"),
    re.compile(r"\bum+(?:\s|$|\b)", re.IGNORECASE),
    re.compile(r"\buh+(?:\s|$|\b)", re.IGNORECASE),
    re.compile(r"\bah+(?:\s|$|\b)", re.IGNORECASE),
    re.compile(r"\blike(?:\s|$|\b)", re.IGNORECASE),
    re.compile(r"\byou\s+know(?:\s|$|\b)", re.IGNORECASE),
    re.compile(r"\bwell(?:\s|$|\b)", re.IGNORECASE),
    re.compile(r"\bso(?:\s|$|\b)", re.IGNORECASE),
    re.compile(r"\bbasically(?:\s|$|\b)", re.IGNORECASE),
    re.compile(r"\bactually(?:\s|$|\b)", re.IGNORECASE),
    re.compile(r"\bliterally(?:\s|$|\b)", re.IGNORECASE),
]


# ── Time Helpers ─────────────────────────────────────────────────────────────


def normalize_timestamp(raw: str) -> str | None:
    """Normalize a caption timestamp to zero-padded ``HH:MM:SS.mmm``.

    Accepts ``HH:MM:SS.mmm``, ``MM:SS.mmm`` and comma decimal separators.
    Returns None when the value is not a timestamp.
    """
    match = _TIMESTAMP.match(raw.strip())
    if not match:
        return None
    hours, minutes, seconds, millis = match.groups()
    if int(minutes) > 59 or int(seconds) > 59:
        return None
    return f"{int(hours or 0):02d}:{int(minutes):02d}:{int(seconds):02d}.{millis.ljust(3, '0')}"


def time_to_seconds(timestamp: str) -> float:
    """Convert ``HH:MM:SS.mmm`` or ``MM:SS.mmm`` to seconds."""
    parts = timestamp.replace(",", ".").split(":")
    seconds = 0.0
    if len(parts) >= 3:
        seconds += int(parts[0]) * 3600
        seconds += int(parts[1]) * 60
        seconds += float(parts[2])
    elif len(parts) == 2:
        seconds += int(parts[0]) * 60
        seconds += float(parts[1])
    return seconds


def seconds_to_time_string(total_seconds: float) -> str:
    """Convert seconds to ``HH:MM:SS``."""
    whole = int(total_seconds)
    hours, remainder = divmod(whole, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


# ── Line Helpers ─────────────────────────────────────────────────────────────


def extract_speaker(line: str) -> str:
    """Extract a speaker name from a caption text line, or "" if none."""
    voice = _VOICE_TAG.search(line)
    if voice and voice.group(1).strip():
        return voice.group(1).strip()

    colon = _COLON_PREFIX.match(_MARKUP_TAG.sub("", line))
    if colon and colon.group(1).strip():
        return colon.group(1).strip()

    return ""


def extract_clean_text(line: str, remove_speaker: bool = True) -> str:
    """Strip markup tags and, optionally, a leading ``Name:`` prefix."""
    clean = _MARKUP_TAG.sub("", line)
    if remove_speaker:
        colon = _COLON_PREFIX.match(clean)
        if colon and colon.group(2):
            clean = colon.group(2)
    return clean.strip()


def _parse_timing_line(line: str) -> tuple[str, str] | None:
    """Parse ``start --> end [cue settings]``; None when malformed."""
    start_raw, _, rest = line.partition("-->")
    end_tokens = rest.split()
    if not end_tokens:
        return None
    start = normalize_timestamp(start_raw)
    end = normalize_timestamp(end_tokens[0])
    if start is None or end is None or end < start:
        return None
    return start, end


# ── Entry Transforms ─────────────────────────────────────────────────────────


def combine_consecutive_speaker_entries(
    entries: list[TranscriptEntry],
) -> list[TranscriptEntry]:
    """Merge adjacent entries that share a speaker.

    Text is joined with a single space and the end time is taken from the
    later entry. Input entries are left untouched.
    """
    result: list[TranscriptEntry] = []
    for entry in entries:
        if result and result[-1].speaker == entry.speaker:
            previous = result[-1]
            result[-1] = previous.model_copy(
                update={
                    "text": f"{previous.text} {entry.text}",
                    "end_time": entry.end_time,
                }
            )
        else:
            result.append(entry.model_copy())
    return result


def remove_filler_words(text: str) -> str:
    """Strip filler words and redundant phrases, then collapse whitespace."""
    cleaned = text
    for pattern in (*_REDUNDANT_PATTERNS, *_FILLER_PATTERNS):
        cleaned = pattern.sub(" ", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


# ── Parser ───────────────────────────────────────────────────────────────────


def parse_captions(
    raw_caption_text: str,
    metadata: TranscriptMetadata,
    options: ParseOptions | None = None,
) -> StructuredTranscript:
    """Parse caption markup into a StructuredTranscript.

    Args:
        raw_caption_text: WebVTT-style caption file contents.
        metadata: Meeting metadata; a copy with speakers filled in is returned.
        options: Parsing switches (speaker extraction, merging, filler removal).

    Returns:
        StructuredTranscript whose raw_text is the newline-joined entry text.
    """
    opts = options or ParseOptions()
    entries: list[TranscriptEntry] = []
    current: dict | None = None
    skipped_cues = 0

    def _flush() -> None:
        nonlocal skipped_cues
        if not current or not current["text"]:
            return
        start = time_to_seconds(current["start_time"])
        if entries and start < time_to_seconds(entries[-1].start_time):
            skipped_cues += 1
            return
        entries.append(TranscriptEntry(**current))

    for raw_line in raw_caption_text.splitlines():
        line = raw_line.strip()

        if "-->" in line:
            _flush()
            timing = _parse_timing_line(line)
            if timing is None:
                skipped_cues += 1
                current = None
                continue
            current = {
                "start_time": timing[0],
                "end_time": timing[1],
                "speaker": None,
                "text": "",
            }
            continue

        if not line:
            # A blank line ends the cue; identifiers and NOTE blocks that
            # follow are not cue text.
            _flush()
            current = None
            continue

        if current is None:
            continue

        if opts.extract_speakers and current["speaker"] is None:
            speaker = extract_speaker(line)
            if speaker:
                current["speaker"] = speaker

        clean = extract_clean_text(line, remove_speaker=opts.extract_speakers)
        if clean:
            current["text"] = f"{current['text']} {clean}" if current["text"] else clean

    _flush()

    if opts.combine_lines:
        entries = combine_consecutive_speaker_entries(entries)

    if opts.remove_filler:
        cleaned: list[TranscriptEntry] = []
        for entry in entries:
            text = remove_filler_words(entry.text)
            if text:
                cleaned.append(entry.model_copy(update={"text": text}))
        entries = cleaned

    speakers: list[str] = []
    for entry in entries:
        if entry.speaker and entry.speaker not in speakers:
            speakers.append(entry.speaker)

    if skipped_cues:
        logger.debug("transcript.cues_skipped", count=skipped_cues)

    return StructuredTranscript(
        metadata=metadata.model_copy(
            update={"speakers": speakers, "speaker_count": len(speakers)}
        ),
        entries=entries,
        raw_text="\n".join(entry.text for entry in entries),
    )


# ── Rendering ────────────────────────────────────────────────────────────────


def format_entries_as_text(entries: list[TranscriptEntry]) -> str:
    """Render entries as ``Speaker: text`` lines (speaker omitted if unknown)."""
    return "\n".join(
        f"{entry.speaker}: {entry.text}" if entry.speaker else entry.text
        for entry in entries
    )


def transcript_to_markdown(transcript: StructuredTranscript) -> str:
    """Render a transcript as a markdown document grouped by cue start time."""
    meta = transcript.metadata
    lines = [f"# 会議文字起こし: {meta.topic or '無題'}", ""]

    if meta.date:
        lines += [f"日時: {meta.date}", ""]

    lines += ["## 参加者", ""]
    lines += [f"- {speaker}" for speaker in meta.speakers or []]
    lines += ["", "## 会話内容", ""]

    for entry in transcript.entries:
        speaker = f"**{entry.speaker}**" if entry.speaker else "匿名"
        lines += [f"### {entry.start_time.split('.')[0]}", "", f"{speaker}: {entry.text}", ""]

    return "\n".join(lines)
