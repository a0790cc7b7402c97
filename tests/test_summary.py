"""Unit tests for global summary parsing and generation."""

from __future__ import annotations

import pytest

from src.app.minutes.schemas import Priority
from src.app.minutes.summary import (
    MAX_SUMMARY_INPUT_CHARS,
    TRUNCATION_MARKER,
    GlobalSummaryGenerator,
    classify_priority,
    parse_action_item,
    parse_global_summary,
)
from tests.fakes import SUMMARY_MARKDOWN, FakeTextGenerator


class TestParseGlobalSummary:
    """Tests for parse_global_summary."""

    def test_full_japanese_document(self):
        summary = parse_global_summary(SUMMARY_MARKDOWN)

        assert summary.purpose == "新機能リリース計画の確認"
        assert summary.participants == ["田中", "佐藤"]
        assert summary.date == "2026-03-01 10:00"
        assert summary.location == "オンライン"
        assert summary.summary == "リリース日程とテスト体制について議論した。"
        assert summary.decisions == ["リリース日を4月1日に確定", "QA担当を佐藤さんとする"]
        assert summary.raw_markdown == SUMMARY_MARKDOWN

    def test_action_items(self):
        summary = parse_global_summary(SUMMARY_MARKDOWN)

        first, second = summary.action_items
        assert first.assignee == "田中"
        assert first.task.startswith("リリースノートを作成")
        assert first.due_date == "2026-03-20"
        assert first.priority == Priority.HIGH
        assert second.assignee == "佐藤"
        assert second.priority == Priority.LOW

    def test_decision_bullets_stripped(self):
        markdown = "## 決まったこと\n- alpha\n* beta\n\n## サマリ\ntext"

        summary = parse_global_summary(markdown)

        assert summary.decisions == ["alpha", "beta"]

    def test_section_ends_at_next_heading(self):
        markdown = "## 決まったこと\n- one\n## ネクストアクション\n- [A] two"

        summary = parse_global_summary(markdown)

        assert summary.decisions == ["one"]
        assert [a.task for a in summary.action_items] == ["two"]

    def test_english_markers(self):
        markdown = (
            "## Overview\n"
            "- Purpose: Quarterly planning\n"
            "- Participants: Alice / Bob, Carol\n"
            "- Date: 2026-03-01\n"
            "- Location: Room 4\n\n"
            "## Summary\nWe planned the quarter.\n\n"
            "## Decisions\n- Ship in April\n\n"
            "## Action Items\n- [Alice] Draft roadmap (Due: 2026-03-10, urgent)\n"
        )

        summary = parse_global_summary(markdown)

        assert summary.purpose == "Quarterly planning"
        assert summary.participants == ["Alice", "Bob", "Carol"]
        assert summary.location == "Room 4"
        assert summary.summary == "We planned the quarter."
        assert summary.decisions == ["Ship in April"]
        item = summary.action_items[0]
        assert item.assignee == "Alice"
        assert item.due_date == "2026-03-10"
        assert item.priority == Priority.HIGH

    def test_missing_sections_default_english(self):
        summary = parse_global_summary("Nothing structured here.")

        assert summary.purpose == "unknown"
        assert summary.date == "unknown"
        assert summary.location == "online"
        assert summary.participants == []
        assert summary.decisions == []
        assert summary.action_items == []
        assert summary.summary == ""

    def test_missing_sections_default_japanese(self):
        summary = parse_global_summary("## サマリ\n短い会議でした。")

        assert summary.purpose == "不明"
        assert summary.date == "不明"
        assert summary.location == "オンライン"
        assert summary.summary == "短い会議でした。"

    def test_placeholders_filtered(self):
        markdown = (
            "- ミーティングの目的: 不明\n"
            "- 参加者: 不明\n\n"
            "## 決まったこと\n- 明確な決定事項はありませんでした\n\n"
            "## ネクストアクション\n- なし\n"
        )

        summary = parse_global_summary(markdown)

        assert summary.purpose == "不明"
        assert summary.participants == []
        assert summary.decisions == []
        assert summary.action_items == []

    def test_unassigned_action_item(self):
        item = parse_action_item("[未定] 会場を予約 (優先度: 中)")

        assert item.assignee is None
        assert item.task == "会場を予約 (優先度: 中)"
        assert item.priority == Priority.MEDIUM

    def test_assignee_name_does_not_set_priority(self):
        item = parse_action_item("[高橋] 資料作成")

        assert item.assignee == "高橋"
        assert item.task == "資料作成"
        assert item.priority == Priority.MEDIUM

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("優先度: 高", Priority.HIGH),
            ("重要なタスク", Priority.HIGH),
            ("priority: low", Priority.LOW),
            ("minor cleanup", Priority.LOW),
            ("優先度: 中", Priority.MEDIUM),
            ("no hint", Priority.MEDIUM),
            ("Follow up with client", Priority.MEDIUM),
            ("Highlight the risks", Priority.MEDIUM),
            ("優先度: 低 (重要顧客)", Priority.LOW),
            ("Priority: high, minor edits only", Priority.HIGH),
        ],
    )
    def test_classify_priority(self, text, expected):
        assert classify_priority(text) == expected


class TestGlobalSummaryGenerator:
    """Tests for GlobalSummaryGenerator."""

    @pytest.mark.asyncio
    async def test_short_text_sent_unchanged(self):
        llm = FakeTextGenerator({"global_summary": SUMMARY_MARKDOWN})

        result = await GlobalSummaryGenerator(llm).generate("短い文字起こし", "2026-03-01", "定例")

        assert result == SUMMARY_MARKDOWN
        call = llm.calls[0]
        assert "短い文字起こし" in call["prompt"]
        assert "定例" in call["prompt"]
        assert "2026-03-01" in call["prompt"]
        assert TRUNCATION_MARKER not in call["prompt"]
        assert call["temperature"] == 0.2
        assert call["max_output_tokens"] == 4096

    @pytest.mark.asyncio
    async def test_long_text_truncated_with_marker(self):
        llm = FakeTextGenerator({"global_summary": SUMMARY_MARKDOWN})
        text = "x" * (MAX_SUMMARY_INPUT_CHARS + 100)

        await GlobalSummaryGenerator(llm).generate(text)

        prompt = llm.calls[0]["prompt"]
        assert "x" * MAX_SUMMARY_INPUT_CHARS + TRUNCATION_MARKER in prompt
        assert "x" * (MAX_SUMMARY_INPUT_CHARS + 1) not in prompt
